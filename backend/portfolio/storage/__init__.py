import logging

from portfolio.config import Settings
from portfolio.storage.base import (
    DuplicateEmailError,
    Storage,
    StorageError,
    StorageUnavailableError,
)
from portfolio.storage.fallback import BreakerState, FallbackStorage
from portfolio.storage.memory import InMemoryStorage
from portfolio.storage.relational import SqlStorage

logger = logging.getLogger(__name__)


def build_storage(settings: Settings) -> Storage:
    """Pick the storage backend for this process from configuration."""
    if not settings.database_url:
        logger.warning(
            "DATABASE_URL not set - using in-memory storage; data is lost on restart "
            "and not shared between worker processes"
        )
        return InMemoryStorage()

    storage = SqlStorage(settings.database_url)
    if settings.storage_fallback:
        logger.info("Relational storage with in-memory fallback enabled")
        return FallbackStorage(
            storage, InMemoryStorage(), retry_after=settings.fallback_retry_seconds
        )
    return storage


__all__ = [
    "BreakerState",
    "DuplicateEmailError",
    "FallbackStorage",
    "InMemoryStorage",
    "SqlStorage",
    "Storage",
    "StorageError",
    "StorageUnavailableError",
    "build_storage",
]
