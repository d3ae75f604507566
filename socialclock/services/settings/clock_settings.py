from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml

from socialclock.models.collaborators import Identity
from socialclock.services.alarm_event.models import ANONYMOUS_USER_ID

logger = logging.getLogger(__name__)

ALL_WEEKDAYS_MASK = 0b1111111

DEFAULT_SETTINGS = {
    "hour": 7,
    "minute": 0,
    "snooze_duration": 5,
    "weekdays": ALL_WEEKDAYS_MASK,
    "user_id": ANONYMOUS_USER_ID,
    "user_name": "",
}


def _check_int(key: str, value, low: int, high: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Setting {key} must be an integer")
    if value < low or (high is not None and value > high):
        bound = f"{low}..{high}" if high is not None else f">= {low}"
        raise ValueError(f"Setting {key} must be {bound}, got {value}")
    return value


def _check_day(day: int) -> int:
    return _check_int("weekday", day, 0, 6)


def validate_settings(values: dict) -> dict:
    unknown = set(values) - set(DEFAULT_SETTINGS)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
    checked = dict(values)
    if "hour" in checked:
        _check_int("hour", checked["hour"], 0, 23)
    if "minute" in checked:
        _check_int("minute", checked["minute"], 0, 59)
    if "snooze_duration" in checked:
        _check_int("snooze_duration", checked["snooze_duration"], 1)
    if "weekdays" in checked:
        _check_int("weekdays", checked["weekdays"], 0, ALL_WEEKDAYS_MASK)
    for key in ("user_id", "user_name"):
        if key in checked:
            checked[key] = str(checked[key])
    return checked


class ClockSettings:
    """User preferences stored in a YAML file.

    Weekdays are a bit mask with bit 0 for Sunday through bit 6 for Saturday.
    Logging in stores the social identity that new alarm events are recorded
    under; logging out falls back to the anonymous user.
    """

    def __init__(self, path: Path, defaults: Optional[dict] = None):
        self.path = Path(path)
        self._values = {**DEFAULT_SETTINGS, **validate_settings(defaults or {})}
        if self.path.exists():
            stored = yaml.safe_load(self.path.read_text()) or {}
            if not isinstance(stored, dict):
                raise ValueError(f"{self.path} must contain a mapping")
            self._values.update(validate_settings(stored))
            logger.debug(f"Loaded clock settings from {self.path}")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(self._values, sort_keys=True))

    def _set(self, **values) -> None:
        self._values.update(validate_settings(values))
        self._save()
        logger.info(f"Updated clock settings: {', '.join(sorted(values))}")

    def get_hour(self) -> int:
        return self._values["hour"]

    def get_minute(self) -> int:
        return self._values["minute"]

    def get_snooze_duration(self) -> int:
        return self._values["snooze_duration"]

    def get_weekday_mask(self) -> int:
        return self._values["weekdays"]

    def is_weekday_enable(self, day: int) -> bool:
        return bool(self._values["weekdays"] & (1 << _check_day(day)))

    def get_user_id(self) -> str:
        return self._values["user_id"]

    def get_user_name(self) -> str:
        return self._values["user_name"]

    def set_minute(self, minute: int) -> None:
        self._set(minute=minute)

    def set_time(self, hour: int, minute: int) -> None:
        self._set(hour=hour, minute=minute)

    def set_snooze_duration(self, minutes: int) -> None:
        self._set(snooze_duration=minutes)

    def switch_weekday_enable(self, day: int) -> bool:
        """Toggles a weekday and returns its new state."""
        mask = self._values["weekdays"] ^ (1 << _check_day(day))
        self._set(weekdays=mask)
        return bool(mask & (1 << day))

    def login(self, user_id: str, user_name: str) -> Identity:
        self._set(user_id=user_id, user_name=user_name)
        logger.info(f"Logged in as {user_name} ({user_id})")
        return self.current_identity()

    def logout(self) -> None:
        self._set(user_id=ANONYMOUS_USER_ID, user_name="")
        logger.info("Logged out")

    def current_identity(self) -> Identity:
        return Identity(user_id=self.get_user_id(), user_name=self.get_user_name())

    @property
    def is_logged_in(self) -> bool:
        return self.get_user_id() != ANONYMOUS_USER_ID
