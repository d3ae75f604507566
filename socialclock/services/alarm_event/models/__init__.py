from .alarm_event import ANONYMOUS_USER_ID, AlarmEvent

__all__ = ["ANONYMOUS_USER_ID", "AlarmEvent"]
