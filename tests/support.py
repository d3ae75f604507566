from datetime import datetime, timedelta

from sqlalchemy.pool import StaticPool

from socialclock.services.alarm_event import EventStore, create_event_store, setup_database


def make_store() -> EventStore:
    """An event store over a private in-memory SQLite database."""
    engine = setup_database(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    return create_event_store(engine)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now
