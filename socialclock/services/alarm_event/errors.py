class AlarmEventError(Exception):
    """Base class for alarm event storage and lifecycle errors."""


class DuplicateKeyError(AlarmEventError):
    """An alarm event with the same event_id is already stored."""

    def __init__(self, event_id: str):
        super().__init__(f"Alarm event {event_id} already exists")
        self.event_id = event_id


class AlreadyStartedError(AlarmEventError):
    """The alarm event was started before."""

    def __init__(self, event_id: str):
        super().__init__(f"Alarm event {event_id} is already started")
        self.event_id = event_id


class StorageUnavailableError(AlarmEventError):
    """The event store is closed or its database cannot be reached."""


class QuerySyntaxError(AlarmEventError):
    """A filter predicate or ordering is malformed."""
