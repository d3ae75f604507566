from .alarm_event import SCHEMA_VERSION, AlarmEventORM

__all__ = ["SCHEMA_VERSION", "AlarmEventORM"]
