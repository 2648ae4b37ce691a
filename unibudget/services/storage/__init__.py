"""
Storage Services Package

Provides the abstract record store interface and two implementations:
an SQLite file store (the default) and an in-memory store.
"""

from unibudget.services.storage.interface import (
    ALL_COLLECTIONS,
    Collection,
    Record,
    RecordNotFound,
    RecordStoreInterface,
    ResetFailed,
    StorageError,
    StoreUnavailable,
    record_key,
)
from unibudget.services.storage.memory import InMemoryRecordStore
from unibudget.services.storage.sqlite_store import (
    SCHEMA_VERSION,
    ConnectionState,
    SQLiteRecordStore,
    StoreConnection,
)

__all__ = [
    # Interface
    "ALL_COLLECTIONS",
    "Collection",
    "Record",
    "RecordStoreInterface",
    "record_key",
    # Exceptions
    "RecordNotFound",
    "ResetFailed",
    "StorageError",
    "StoreUnavailable",
    # Implementations
    "ConnectionState",
    "InMemoryRecordStore",
    "SCHEMA_VERSION",
    "SQLiteRecordStore",
    "StoreConnection",
]
