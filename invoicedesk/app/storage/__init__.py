"""Storage backend selection.

The backend is chosen once per process: SQL when ``DATABASE_URL`` is set and
the database initializes, the JSON-file store otherwise. There is no failover
after startup.
"""

import structlog
from sqlalchemy.exc import SQLAlchemyError

from invoicedesk.app.core.settings import Settings, get_settings
from invoicedesk.app.storage.base import Storage
from invoicedesk.app.storage.json_store import JsonStorage
from invoicedesk.app.storage.sql_store import SqlStorage

logger = structlog.get_logger(__name__)


def build_storage(settings: Settings) -> Storage:
    if not settings.database_url:
        logger.warning("database_url_not_configured", fallback="json", data_dir=settings.data_dir)
        return JsonStorage(settings.data_dir)

    try:
        storage = SqlStorage.from_url(settings.database_url)
    except (SQLAlchemyError, ImportError) as exc:
        # ImportError covers a missing DB driver module
        logger.error("sql_storage_init_failed", error=str(exc), fallback="json", data_dir=settings.data_dir)
        return JsonStorage(settings.data_dir)

    logger.info("sql_storage_ready", dialect=storage.engine.dialect.name)
    return storage


_storage_instance = None


def get_storage() -> Storage:
    """Return the process-wide Storage, building it on first use."""
    global _storage_instance
    if _storage_instance is None:
        _storage_instance = build_storage(get_settings())
    return _storage_instance


__all__ = ["Storage", "JsonStorage", "SqlStorage", "build_storage", "get_storage"]
