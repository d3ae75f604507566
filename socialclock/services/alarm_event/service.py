import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from .errors import AlreadyStartedError
from .models import AlarmEvent
from .query import order_by, where
from .store import EventStore

logger = logging.getLogger(__name__)


class AlarmEventService:
    """Owns the alarm event state machine.

    An event moves from *uninitialized* (an id exists but nothing is stored)
    to *started* (stored, ``end_at`` empty) and finally to *finished*
    (``end_at`` set). Snoozing loops on *started*. Every mutation goes through
    this service, runs inside one store session and holds a per-event lock, so
    a normal alarm and a snooze alarm firing together cannot interleave.
    """

    def __init__(self, store: EventStore, clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.clock = clock
        # event_id -> [lock, number of callers holding or waiting for it]
        self._locks: dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _event_lock(self, event_id: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.setdefault(event_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[event_id]

    def init_alarm_event(self) -> str:
        """Mints an event id. The record is only written once the alarm rings."""
        event_id = uuid.uuid4().hex
        logger.info(f"Initialized alarm event {event_id}")
        return event_id

    def start_alarm_event(self, event_id: str, user_id: str, user_name: str, start_at: datetime) -> AlarmEvent:
        alarm_event = AlarmEvent(
            event_id=event_id,
            user_id=user_id,
            user_name=user_name,
            start_at=start_at,
        )
        with self._event_lock(event_id), self.store.session_scope() as session:
            if self.store.get_by_event_id(event_id, session=session) is not None:
                raise AlreadyStartedError(event_id)
            self.store.insert(alarm_event, session=session)
        logger.info(f"Started alarm event {event_id} for user {user_id}")
        return alarm_event

    def get_alarm_event_by_id(self, event_id: str) -> Optional[AlarmEvent]:
        return self.store.get_by_event_id(event_id)

    def snooze_alarm_event(self, event_id: str) -> Optional[AlarmEvent]:
        """Counts one snooze. Missing or finished events are left alone and None is returned."""
        with self._event_lock(event_id), self.store.session_scope() as session:
            alarm_event = self.store.get_by_event_id(event_id, session=session)
            if alarm_event is None:
                logger.info(f"Ignoring snooze of unknown alarm event {event_id}")
                return None
            if alarm_event.is_finished:
                logger.info(f"Ignoring snooze of finished alarm event {event_id}")
                return None
            alarm_event.snooze_times += 1
            self.store.update(alarm_event, session=session)
        logger.info(f"Snoozed alarm event {event_id} ({alarm_event.snooze_times} times)")
        return alarm_event

    def finish_alarm_event(self, event_id: str) -> Optional[AlarmEvent]:
        """Marks the event finished.

        Finishing twice keeps the first ``end_at``. Missing events are ignored
        and None is returned.
        """
        with self._event_lock(event_id), self.store.session_scope() as session:
            alarm_event = self.store.get_by_event_id(event_id, session=session)
            if alarm_event is None:
                logger.info(f"Ignoring finish of unknown alarm event {event_id}")
                return None
            if alarm_event.is_finished:
                logger.info(f"Alarm event {event_id} already finished at {alarm_event.end_at}")
                return alarm_event
            alarm_event.end_at = self.clock()
            self.store.update(alarm_event, session=session)
        logger.info(f"Finished alarm event {event_id} at {alarm_event.end_at}")
        return alarm_event

    def get_all_alarm_events(self) -> list[AlarmEvent]:
        return self.store.find_all()

    def get_finished_alarm_events(self) -> list[AlarmEvent]:
        return self.store.filter_by(
            where("end_at", "is_not_null"), order_by("start_at", descending=True)
        )

    def delete_alarm_event(self, event_id: str) -> bool:
        """Administrative removal. Normal flows never delete events."""
        with self._event_lock(event_id):
            deleted = self.store.delete(event_id) > 0
        if deleted:
            logger.warning(f"Deleted alarm event {event_id}")
        return deleted

    @staticmethod
    def is_finished(alarm_event: AlarmEvent) -> bool:
        return alarm_event.end_at is not None
