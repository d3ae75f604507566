from .database import create_event_store, setup_database
from .errors import (
    AlarmEventError,
    AlreadyStartedError,
    DuplicateKeyError,
    QuerySyntaxError,
    StorageUnavailableError,
)
from .models import ANONYMOUS_USER_ID, AlarmEvent
from .query import OrderBy, all_of, any_of, order_by, where
from .service import AlarmEventService
from .store import EventStore

__all__ = [
    "ANONYMOUS_USER_ID",
    "AlarmEvent",
    "AlarmEventError",
    "AlarmEventService",
    "AlreadyStartedError",
    "DuplicateKeyError",
    "EventStore",
    "OrderBy",
    "QuerySyntaxError",
    "StorageUnavailableError",
    "all_of",
    "any_of",
    "create_event_store",
    "order_by",
    "setup_database",
    "where",
]
