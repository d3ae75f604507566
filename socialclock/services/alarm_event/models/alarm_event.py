from dataclasses import dataclass
from datetime import datetime
from typing import Optional

ANONYMOUS_USER_ID = "0"
"""User id recorded when no social account is logged in."""


@dataclass
class AlarmEvent:
    """One day's wake-up cycle, from the first ring until the user gets up."""

    event_id: str
    """Unique identifier minted before the alarm is scheduled. Never reused."""

    user_id: str
    """Social account active when the alarm first rang."""

    user_name: str
    """Display name snapshot taken when the alarm first rang."""

    start_at: datetime
    """When the alarm first rang."""

    end_at: Optional[datetime] = None
    """When the user got up. None while the event is running."""

    snooze_times: int = 0
    """How many times the alarm was snoozed."""

    sync_at: Optional[datetime] = None
    """Last remote synchronisation. Reserved."""

    deleted_at: Optional[datetime] = None
    """Reserved soft-delete marker."""

    @property
    def is_finished(self) -> bool:
        return self.end_at is not None
