"""Row working set and its persistence."""

from place_extractor.rows.persistence import (
    JsonFilePersistence,
    MemoryPersistence,
    PersistenceError,
    RedisPersistence,
    RowPersistence,
    build_persistence,
)
from place_extractor.rows.store import RowNotFoundError, RowStore

__all__ = [
    "JsonFilePersistence",
    "MemoryPersistence",
    "PersistenceError",
    "RedisPersistence",
    "RowNotFoundError",
    "RowPersistence",
    "RowStore",
    "build_persistence",
]
