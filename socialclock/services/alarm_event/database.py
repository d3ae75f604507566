import logging
import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from socialclock.models.orm import Base
from .orm import SCHEMA_VERSION
from .store import EventStore

logger = logging.getLogger(__name__)


def setup_database(database_url: str, **engine_kwargs) -> Engine:
    """Initialize the database and create necessary directories.

    Returns:
        SQLAlchemy engine instance
    """
    if database_url.startswith("sqlite:///"):
        # Ensure data directory exists
        data_dir = os.path.dirname(database_url.replace("sqlite:///", ""))
        if data_dir and not os.path.exists(data_dir):
            os.makedirs(data_dir)
            logger.info(f"Created data directory at {data_dir}")

    engine = create_engine(database_url, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _record_schema_version)
    Base.metadata.create_all(engine)
    logger.info(f"Database initialized successfully (schema version {SCHEMA_VERSION})")

    return engine


def _record_schema_version(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute(f"PRAGMA user_version = {int(SCHEMA_VERSION)}")
    finally:
        cursor.close()


def create_event_store(engine: Engine) -> EventStore:
    """Builds an event store over one long-lived engine, releasing it on close."""
    session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return EventStore(session_factory, on_close=engine.dispose)
