import logging
from typing import Optional
from uuid import uuid4


class RequestIdFilter(logging.Filter):
    """Stamps each log record with the id of the action currently being handled."""

    def __init__(self):
        super().__init__()
        self.current_request_id: Optional[str] = None

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = self.current_request_id or ""
        return True

    def set_request_id(self, request_id: Optional[str]):
        self.current_request_id = request_id


class RequestIdContextManager:
    """Assigns a fresh request id for the duration of one CLI action or fired alarm.

    The id is prefixed with the action name (``snooze-3fa2b1c0d9``) so the
    application log can be grepped per action.
    """

    def __init__(self, request_id_filter: RequestIdFilter, action: str = "action"):
        self.request_id_filter = request_id_filter
        self.action = action
        self.request_id: Optional[str] = None

    def for_action(self, action: str) -> "RequestIdContextManager":
        return RequestIdContextManager(self.request_id_filter, action)

    def __enter__(self):
        self.request_id = f"{self.action}-{uuid4().hex[:10]}"
        self.request_id_filter.set_request_id(self.request_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.request_id_filter.set_request_id(None)
        self.request_id = None
