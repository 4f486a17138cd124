"""Persistence adapters for identities, rosters and app versions."""

from .storage import Storage
from .memory_storage import InMemoryStorage
from .sql_storage import SqlStorage

__all__ = ["InMemoryStorage", "SqlStorage", "Storage", "create_storage"]


def create_storage(kind: str) -> Storage:
    """Build the storage adapter named by ``app.storage``."""
    if kind == "memory":
        return InMemoryStorage()
    if kind == "sql":
        from src.health.core.services.database.db_session import DbSessionService

        db_service = DbSessionService()
        db_service.create_all()
        return SqlStorage(db_service)
    raise ValueError(f"Unknown storage backend: {kind}")
