from .clock_settings import ALL_WEEKDAYS_MASK, ClockSettings

__all__ = ["ALL_WEEKDAYS_MASK", "ClockSettings"]
