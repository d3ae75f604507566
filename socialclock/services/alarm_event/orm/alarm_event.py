from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from socialclock.models.orm import Base
from socialclock.services.alarm_event.models import AlarmEvent

SCHEMA_VERSION = 2
"""Bumped when the table layout changes. No data migration is attached."""


class AlarmEventORM(Base):
    """ORM for alarm events."""

    __tablename__ = "alarm_event"

    event_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=None)
    snooze_times: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sync_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=None)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, default=None)

    @classmethod
    def from_alarm_event(cls, alarm_event: AlarmEvent) -> "AlarmEventORM":
        return cls(
            event_id=alarm_event.event_id,
            user_id=alarm_event.user_id,
            user_name=alarm_event.user_name,
            start_at=alarm_event.start_at,
            end_at=alarm_event.end_at,
            snooze_times=alarm_event.snooze_times,
            sync_at=alarm_event.sync_at,
            deleted_at=alarm_event.deleted_at,
        )

    def to_alarm_event(self) -> AlarmEvent:
        return AlarmEvent(
            event_id=self.event_id,
            user_id=self.user_id,
            user_name=self.user_name,
            start_at=self.start_at,
            end_at=self.end_at,
            snooze_times=self.snooze_times,
            sync_at=self.sync_at,
            deleted_at=self.deleted_at,
        )
