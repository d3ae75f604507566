import logging
from logging.handlers import RotatingFileHandler
import os

from .request_id_filter import RequestIdFilter

LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(request_id)s - %(message)s"
SQL_LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] - %(message)s"

LOGGING_DIR = "logs"
MAX_LOG_SIZE_BYTES = 10 * 1024 * 1024  # 10MB


def setup_sql_logging(logging_dir: str):
    """Echo SQLAlchemy statements to a separate file in verbose mode."""
    sql_logger = logging.getLogger("sqlalchemy.engine")
    sql_logger.setLevel(logging.INFO)

    file_handler = RotatingFileHandler(
        f"{logging_dir}/sql.log", maxBytes=MAX_LOG_SIZE_BYTES, backupCount=5
    )
    file_handler.setFormatter(logging.Formatter(SQL_LOG_FORMAT))
    sql_logger.addHandler(file_handler)
    sql_logger.propagate = False


def setup_application_logging(
    is_verbose: bool, request_id_filter: RequestIdFilter, logging_dir: str
):
    logger = logging.getLogger("socialclock")

    if is_verbose:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    # File handler for application logs
    file_handler = RotatingFileHandler(
        f"{logging_dir}/application.log", maxBytes=MAX_LOG_SIZE_BYTES, backupCount=5
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler.addFilter(request_id_filter)
    logger.addHandler(file_handler)

    # Console handler for immediate feedback
    if is_verbose:
        ch = logging.StreamHandler()
        formatter = logging.Formatter(LOG_FORMAT)
        ch.setFormatter(formatter)
        ch.addFilter(request_id_filter)
        logger.addHandler(ch)


def setup_logging(
    is_verbose: bool, request_id_filter: RequestIdFilter, logging_dir: str = LOGGING_DIR
):
    """Configure logging for the application and, in verbose mode, SQLAlchemy"""
    if not os.path.exists(logging_dir):
        os.makedirs(logging_dir)

    setup_application_logging(is_verbose, request_id_filter, logging_dir)

    if is_verbose:
        setup_sql_logging(logging_dir)
