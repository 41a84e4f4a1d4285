"""
Storage backend selection.

The configured store is built lazily on first use and shared by every
request. reset_storage() closes it so the next call rebuilds from settings.
"""

from typing import Optional

from eventreg.core.config import get_settings
from eventreg.core.errors import ConfigurationError
from eventreg.core.logging import get_logger
from eventreg.db.session import get_session_factory
from eventreg.storage.base import RegistrationStore
from eventreg.storage.sheets_store import SheetsRegistrationStore, build_sheets_service
from eventreg.storage.sql_store import SqlRegistrationStore

logger = get_logger(__name__)

_store: Optional[RegistrationStore] = None


def create_store() -> RegistrationStore:
    settings = get_settings()
    mode = settings.STORAGE_MODE.lower()

    if mode == "sheets":
        service = build_sheets_service(
            settings.GOOGLE_SHEETS_CLIENT_EMAIL,
            settings.GOOGLE_SHEETS_PRIVATE_KEY,
        )
        return SheetsRegistrationStore(
            service,
            settings.GOOGLE_SHEETS_SPREADSHEET_ID,
            settings.GOOGLE_SHEETS_WORKSHEET,
        )

    if mode == "database":
        if not settings.DATABASE_URL:
            raise ConfigurationError("DATABASE_URL is not configured")
        return SqlRegistrationStore(get_session_factory(), owns_engine=True)

    raise ConfigurationError(f"Unknown STORAGE_MODE: {settings.STORAGE_MODE}")


async def get_storage() -> RegistrationStore:
    """
    FastAPI dependency returning the process-wide store.

    Runs on the event loop, not the threadpool, so two first requests
    cannot both build a store.
    """
    global _store
    if _store is None:
        _store = create_store()
        logger.info("storage_ready", backend=type(_store).__name__)
    return _store


async def reset_storage() -> None:
    global _store
    if _store is not None:
        await _store.close()
    _store = None


__all__ = [
    "RegistrationStore",
    "SqlRegistrationStore",
    "SheetsRegistrationStore",
    "create_store",
    "get_storage",
    "reset_storage",
]
