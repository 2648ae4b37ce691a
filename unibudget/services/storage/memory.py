"""
In-Memory Record Store

Same contract as the SQLite store, held in plain dicts. Used when the
database file cannot be opened (the session keeps working, nothing
survives a restart) and in tests.

Records are stored as JSON, like the SQLite store, so callers never
share mutable objects with the store.
"""

import copy
from typing import Optional

import structlog

from unibudget.services.storage.interface import (
    ALL_COLLECTIONS,
    Collection,
    Record,
    RecordStoreInterface,
    ResetFailed,
    StorageError,
    record_key,
)


logger = structlog.get_logger(__name__)


class InMemoryRecordStore(RecordStoreInterface):
    """
    Dict-backed record store.

    ``fail_writes`` / ``fail_reset`` make subsequent writes or resets
    raise, for exercising error paths.
    """

    def __init__(self):
        self._data: dict[Collection, dict[str, str]] = {c: {} for c in ALL_COLLECTIONS}
        self._open = False
        self.fail_writes = False
        self.fail_reset = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def open(self) -> "InMemoryRecordStore":
        self._open = True
        return self

    async def close(self) -> None:
        self._open = False

    async def list_all(self, collection: Collection) -> list[Record]:
        await self.open()
        model = collection.model
        return [model.model_validate_json(p) for p in self._data[collection].values()]

    async def get(self, collection: Collection, key: str) -> Optional[Record]:
        await self.open()
        payload = self._data[collection].get(str(key))
        if payload is None:
            return None
        return collection.model.model_validate_json(payload)

    async def upsert(self, collection: Collection, record: Record) -> None:
        await self.open()
        key = record_key(collection, record)
        if self.fail_writes:
            raise StorageError(f"Failed to save {collection.value}/{key}: writes disabled")
        self._data[collection][key] = record.model_dump_json()

    async def delete(self, collection: Collection, key: str) -> None:
        await self.open()
        if self.fail_writes:
            raise StorageError(f"Failed to delete {collection.value}/{key}: writes disabled")
        self._data[collection].pop(str(key), None)

    async def reset_all(self) -> None:
        await self.open()
        snapshot = copy.deepcopy(self._data)
        try:
            for collection in ALL_COLLECTIONS:
                if self.fail_reset and collection == ALL_COLLECTIONS[-1]:
                    raise ResetFailed("Failed to clear all collections: reset disabled")
                self._data[collection].clear()
        except ResetFailed:
            self._data = snapshot
            raise
        logger.info("store_reset", backend="memory")
