"""Interfaces the orchestrator drives.

The surrounding layers (device alarm service, notification tray, audio, a
social network client) implement these. ``socialclock.integrations.console``
holds the implementations used by the command line.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class AlarmKind(str, Enum):
    NORMAL = "normal"
    """The daily wake-up alarm."""

    SNOOZE = "snooze"
    """A re-trigger after the user snoozed."""


@dataclass(frozen=True)
class Identity:
    user_id: str
    user_name: str


class SettingsProvider(Protocol):
    def get_hour(self) -> int: ...

    def get_minute(self) -> int: ...

    def get_snooze_duration(self) -> int: ...

    def is_weekday_enable(self, day: int) -> bool: ...

    def get_user_id(self) -> str: ...

    def get_user_name(self) -> str: ...

    def set_time(self, hour: int, minute: int) -> None: ...


class IdentityProvider(Protocol):
    def login(self, user_id: str, user_name: str) -> Identity: ...

    def logout(self) -> None: ...

    def current_identity(self) -> Identity: ...


class AlarmScheduler(Protocol):
    def set_alarm(self, event_id: str, kind: AlarmKind, epoch_millis: int) -> None: ...

    def cancel_alarm(self) -> None: ...


class Notifier(Protocol):
    def create_alarm_notification(self, event_id: str, at: datetime) -> None: ...

    def create_snooze_notification(self, event_id: str, at: datetime) -> None: ...

    def cancel_all_notifications(self) -> None: ...


class RingtonePlayer(Protocol):
    """At most one ringtone plays at a time. Both calls are idempotent."""

    def play_ringtone(self) -> None: ...

    def stop_ringtone(self) -> None: ...


class Publisher(Protocol):
    def tweet(self, message: str) -> None: ...
