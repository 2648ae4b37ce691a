"""Services package."""

from unibudget.services.backup import (
    ImportRowSkipped,
    export_filename,
    export_transactions,
    parse_transactions,
)
from unibudget.services.ledger import LedgerService
from unibudget.services.storage import (
    Collection,
    InMemoryRecordStore,
    RecordNotFound,
    RecordStoreInterface,
    ResetFailed,
    SQLiteRecordStore,
    StorageError,
    StoreConnection,
    StoreUnavailable,
)

__all__ = [
    # Backup
    "ImportRowSkipped",
    "export_filename",
    "export_transactions",
    "parse_transactions",
    # Ledger facade
    "LedgerService",
    # Storage services
    "Collection",
    "InMemoryRecordStore",
    "RecordNotFound",
    "RecordStoreInterface",
    "ResetFailed",
    "SQLiteRecordStore",
    "StorageError",
    "StoreConnection",
    "StoreUnavailable",
]
