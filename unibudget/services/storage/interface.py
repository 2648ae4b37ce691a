"""
Abstract Record Store Interface

The ledger persists four independent collections. Each collection holds
one record type and addresses records by a single identity field:

    transactions      -> Transaction.id
    limits            -> BudgetLimit.category
    customCategories  -> CustomCategory.id
    settings          -> SettingRecord.key

Implementations must provide insert-or-replace writes that are durable
before they return, no-op deletes for missing keys, and a reset that
clears all four collections as one atomic unit.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel

from unibudget.models.categories import CustomCategory
from unibudget.models.ledger import BudgetLimit, SettingRecord, Transaction


Record = Union[Transaction, BudgetLimit, CustomCategory, SettingRecord]


class Collection(str, Enum):
    """Named record collections in the store."""
    TRANSACTIONS = "transactions"
    LIMITS = "limits"
    CUSTOM_CATEGORIES = "customCategories"
    SETTINGS = "settings"

    @property
    def key_field(self) -> str:
        return _KEY_FIELDS[self]

    @property
    def model(self) -> type[BaseModel]:
        return _MODELS[self]


_KEY_FIELDS = {
    Collection.TRANSACTIONS: "id",
    Collection.LIMITS: "category",
    Collection.CUSTOM_CATEGORIES: "id",
    Collection.SETTINGS: "key",
}

_MODELS: dict[Collection, type[BaseModel]] = {
    Collection.TRANSACTIONS: Transaction,
    Collection.LIMITS: BudgetLimit,
    Collection.CUSTOM_CATEGORIES: CustomCategory,
    Collection.SETTINGS: SettingRecord,
}

ALL_COLLECTIONS: tuple[Collection, ...] = tuple(Collection)


def record_key(collection: Collection, record: BaseModel) -> str:
    """
    Extract the identity of a record as a string.

    Raises:
        TypeError: If the record is not of the collection's model type
    """
    if not isinstance(record, collection.model):
        raise TypeError(
            f"{type(record).__name__} cannot be stored in '{collection.value}' "
            f"(expected {collection.model.__name__})"
        )
    return str(getattr(record, collection.key_field))


class RecordStoreInterface(ABC):
    """
    Abstract interface for the ledger's record store.

    Any storage implementation (SQLite file, in-memory, ...)
    must implement these methods.
    """

    @abstractmethod
    async def open(self) -> Any:
        """
        Establish the store connection, or return the live one.

        Concurrent callers share the same handle. A closed handle is
        reopened transparently.

        Returns:
            An implementation-specific handle

        Raises:
            StoreUnavailable: If the underlying medium cannot be opened
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. The next operation reopens it."""
        pass

    @abstractmethod
    async def list_all(self, collection: Collection) -> list[Record]:
        """
        Return every record in a collection.

        Order is unspecified.
        """
        pass

    @abstractmethod
    async def get(self, collection: Collection, key: str) -> Optional[Record]:
        """
        Retrieve a single record by key.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def upsert(self, collection: Collection, record: Record) -> None:
        """
        Write a record, replacing any record with the same key.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, collection: Collection, key: str) -> None:
        """
        Remove a record by key.

        Deleting a key that does not exist is not an error.
        """
        pass

    @abstractmethod
    async def reset_all(self) -> None:
        """
        Clear all four collections atomically.

        Raises:
            ResetFailed: If the clear fails; no collection is modified
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StoreUnavailable(StorageError):
    """The store could not be opened (permissions, corruption, locked)."""
    pass


class ResetFailed(StorageError):
    """The atomic clear of all collections failed."""
    pass


class RecordNotFound(StorageError):
    """A record that was required does not exist."""
    pass
