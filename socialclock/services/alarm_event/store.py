import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from .errors import DuplicateKeyError, StorageUnavailableError
from .models import AlarmEvent
from .orm import AlarmEventORM
from .query import compile_order_by, compile_predicate, parse_order_by, parse_predicate

logger = logging.getLogger(__name__)


class EventStore:
    """Persists alarm events. Holds no business rules.

    Every operation accepts an optional ``session``. Without one it opens its
    own scope and releases it before returning; with one it joins the caller's
    scope from :meth:`session_scope` so several calls form one logical
    operation.
    """

    def __init__(self, session_factory: Callable[[], Session], on_close: Optional[Callable[[], None]] = None):
        self.session_factory = session_factory
        self.on_close = on_close
        self._closed = False

    def close(self) -> None:
        """Releases the underlying engine. Later calls raise StorageUnavailableError."""
        if self._closed:
            return
        self._closed = True
        if self.on_close is not None:
            self.on_close()
        logger.info("Event store closed")

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Acquires one session, commits on success, rolls back on error and always closes it."""
        if self._closed:
            raise StorageUnavailableError("Event store is closed")
        try:
            session = self.session_factory()
        except OperationalError as e:
            raise StorageUnavailableError(f"Cannot open event store: {e}") from e
        try:
            yield session
            session.commit()
        except OperationalError as e:
            session.rollback()
            raise StorageUnavailableError(f"Event store is unavailable: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def _scope(self, session: Optional[Session]) -> Iterator[Session]:
        if session is not None:
            if self._closed:
                raise StorageUnavailableError("Event store is closed")
            yield session
            return
        with self.session_scope() as own_session:
            yield own_session

    def find_all(self, session: Optional[Session] = None) -> list[AlarmEvent]:
        """All events, latest start first."""
        return self.filter_by(None, None, session=session)

    def filter_by(self, predicate=None, order=None, session: Optional[Session] = None) -> list[AlarmEvent]:
        """Events matching ``predicate`` sorted by ``order``.

        Both arguments are validated before the store is touched, so a
        malformed query raises QuerySyntaxError without opening a session.
        """
        parsed_predicate = parse_predicate(predicate)
        parsed_order = parse_order_by(order)
        stmt = (
            select(AlarmEventORM)
            .where(compile_predicate(parsed_predicate, AlarmEventORM))
            .order_by(*compile_order_by(parsed_order, AlarmEventORM))
        )
        with self._scope(session) as scoped:
            rows = scoped.execute(stmt).scalars().all()
            logger.debug(f"Filter matched {len(rows)} alarm events")
            return [row.to_alarm_event() for row in rows]

    def get_by_event_id(self, event_id: str, session: Optional[Session] = None) -> Optional[AlarmEvent]:
        with self._scope(session) as scoped:
            row = scoped.get(AlarmEventORM, event_id)
            if row is None:
                return None
            return row.to_alarm_event()

    def insert(self, alarm_event: AlarmEvent, session: Optional[Session] = None) -> None:
        """Stores a new event. Raises DuplicateKeyError if the id is taken."""
        with self._scope(session) as scoped:
            if scoped.get(AlarmEventORM, alarm_event.event_id) is not None:
                raise DuplicateKeyError(alarm_event.event_id)
            scoped.add(AlarmEventORM.from_alarm_event(alarm_event))
            try:
                scoped.flush()
            except IntegrityError as e:
                raise DuplicateKeyError(alarm_event.event_id) from e
            logger.info(f"Inserted alarm event {alarm_event.event_id}")

    def update(self, alarm_event: AlarmEvent, session: Optional[Session] = None) -> int:
        """Writes the mutable fields of an event. Returns the number of rows changed."""
        stmt = (
            update(AlarmEventORM)
            .where(AlarmEventORM.event_id == alarm_event.event_id)
            .values(
                end_at=alarm_event.end_at,
                snooze_times=alarm_event.snooze_times,
                sync_at=alarm_event.sync_at,
                deleted_at=alarm_event.deleted_at,
            )
            .execution_options(synchronize_session="fetch")
        )
        with self._scope(session) as scoped:
            count = scoped.execute(stmt).rowcount
            logger.info(f"Updated alarm event {alarm_event.event_id} ({count} rows)")
            return count

    def delete(self, event_id: str, session: Optional[Session] = None) -> int:
        """Removes an event permanently. Returns the number of rows removed."""
        stmt = (
            delete(AlarmEventORM)
            .where(AlarmEventORM.event_id == event_id)
            .execution_options(synchronize_session="fetch")
        )
        with self._scope(session) as scoped:
            count = scoped.execute(stmt).rowcount
            logger.info(f"Deleted alarm event {event_id} ({count} rows)")
            return count
