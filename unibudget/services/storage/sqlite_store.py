"""
SQLite Record Store

The ledger lives in a single SQLite file on the local machine, so it
survives restarts without any server. Each collection is one table of
``(key, payload)`` rows where the payload is the record's JSON.

SCHEMA VERSIONING:
- ``schema_meta`` holds a ``schema_version`` marker.
- Version 1 databases only had the transactions and limits tables.
- On open, an older (or missing) marker causes the missing tables to be
  created; existing tables and rows are left untouched.
- Upgrades are additive only. No data is migrated between versions.

CONNECTION LIFECYCLE:
StoreConnection owns the one SQLAlchemy engine. Concurrent openers wait
on the same lock and receive the same engine. After ``close()`` (or an
invalidated connection) the next operation reopens it.
"""

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, TypeVar

import structlog
from pydantic import ValidationError
from sqlalchemy import (
    Column,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    select,
)
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DatabaseError, OperationalError, SQLAlchemyError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from unibudget.config import get_settings
from unibudget.services.storage.interface import (
    ALL_COLLECTIONS,
    Collection,
    Record,
    RecordStoreInterface,
    ResetFailed,
    StorageError,
    StoreUnavailable,
    record_key,
)


SCHEMA_VERSION = 2
SCHEMA_VERSION_KEY = "schema_version"

metadata = MetaData()

schema_meta = Table(
    "schema_meta",
    metadata,
    Column("name", String, primary_key=True),
    Column("value", String, nullable=False),
)

COLLECTION_TABLES: dict[Collection, Table] = {
    collection: Table(
        collection.value,
        metadata,
        Column("key", String, primary_key=True),
        Column("payload", Text, nullable=False),
    )
    for collection in ALL_COLLECTIONS
}

T = TypeVar("T")

logger = structlog.get_logger(__name__)


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    """WAL for concurrent readers, FULL sync so a commit survives power loss."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=FULL")
    finally:
        cursor.close()


def read_schema_version(engine: Engine) -> int:
    """Return the stored schema version, 0 if the marker is absent."""
    with engine.connect() as conn:
        if not engine.dialect.has_table(conn, schema_meta.name):
            return 0
        row = conn.execute(
            select(schema_meta.c.value).where(schema_meta.c.name == SCHEMA_VERSION_KEY)
        ).first()
    return int(row[0]) if row else 0


def migrate_schema(engine: Engine) -> int:
    """
    Bring the database up to SCHEMA_VERSION.

    Returns the version the database was at before the call.
    """
    with engine.begin() as conn:
        schema_meta.create(conn, checkfirst=True)
        row = conn.execute(
            select(schema_meta.c.value).where(schema_meta.c.name == SCHEMA_VERSION_KEY)
        ).first()
        stored = int(row[0]) if row else 0

        if stored > SCHEMA_VERSION:
            logger.warning(
                "schema_newer_than_supported",
                stored_version=stored,
                supported_version=SCHEMA_VERSION,
            )
            return stored

        if stored < SCHEMA_VERSION:
            metadata.create_all(conn, checkfirst=True)
            stmt = sqlite_insert(schema_meta).values(
                name=SCHEMA_VERSION_KEY, value=str(SCHEMA_VERSION)
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[schema_meta.c.name],
                set_={"value": stmt.excluded.value},
            )
            conn.execute(stmt)
            logger.info(
                "schema_upgraded",
                from_version=stored,
                to_version=SCHEMA_VERSION,
            )

    return stored


class ConnectionState(str, Enum):
    """Lifecycle of a StoreConnection."""
    UNOPENED = "unopened"
    OPENING = "opening"
    OPEN = "open"
    CLOSED = "closed"


class StoreConnection:
    """
    Owns the single live engine for one database file.

    Usage:
        connection = StoreConnection(Path("ledger.db"))
        async with connection.lease() as engine:
            ...
        await connection.close()

    A close requested while leases are outstanding is deferred until
    the last lease is released.
    """

    def __init__(
        self,
        db_path: Path,
        retry_attempts: int = 3,
        retry_max_wait: float = 2.0,
    ):
        self._db_path = Path(db_path)
        self._retry_attempts = retry_attempts
        self._retry_max_wait = retry_max_wait
        self._engine: Optional[Engine] = None
        self._state = ConnectionState.UNOPENED
        self._lock = asyncio.Lock()
        self._leases = 0
        self._close_requested = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def active_leases(self) -> int:
        return self._leases

    def _create_engine(self) -> Engine:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
        )
        event.listen(engine, "connect", _set_sqlite_pragmas)
        try:
            migrate_schema(engine)
        except Exception:
            engine.dispose()
            raise
        return engine

    def _open_with_retry(self) -> Engine:
        retrying = Retrying(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.1, max=self._retry_max_wait),
            retry=retry_if_exception_type((OperationalError, sqlite3.OperationalError)),
            reraise=True,
        )
        try:
            return retrying(self._create_engine)
        except (DatabaseError, sqlite3.Error, OSError) as e:
            raise StoreUnavailable(
                f"Cannot open ledger database at {self._db_path}: {e}"
            ) from e

    async def open(self) -> Engine:
        """Return the live engine, opening it if needed."""
        if self._engine is not None:
            return self._engine

        async with self._lock:
            # Another caller may have finished opening while we waited
            if self._engine is not None:
                return self._engine

            previous_state = self._state
            self._state = ConnectionState.OPENING
            try:
                engine = await asyncio.to_thread(self._open_with_retry)
            except StoreUnavailable as e:
                self._state = previous_state
                logger.error("store_open_failed", db_path=str(self._db_path), error=str(e))
                raise

            self._engine = engine
            self._state = ConnectionState.OPEN
            self._close_requested = False
            logger.info("store_opened", db_path=str(self._db_path))
            return engine

    async def close(self) -> None:
        """Dispose the engine, or defer until outstanding leases end."""
        async with self._lock:
            if self._engine is None:
                return
            if self._leases > 0:
                self._close_requested = True
                return
            self._engine.dispose()
            self._engine = None
            self._state = ConnectionState.CLOSED
            logger.info("store_closed", db_path=str(self._db_path))

    async def invalidate(self) -> None:
        """Drop the engine after a connection-level failure."""
        async with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
                self._state = ConnectionState.CLOSED
                logger.warning("store_invalidated", db_path=str(self._db_path))

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[Engine]:
        """Hold the engine open for the duration of the block."""
        engine = await self.open()
        self._leases += 1
        try:
            yield engine
        finally:
            self._leases -= 1
            if self._leases == 0 and self._close_requested:
                self._close_requested = False
                await self.close()


class SQLiteRecordStore(RecordStoreInterface):
    """
    SQLite implementation of the record store.

    All blocking database work runs in a worker thread; callers only
    ever await.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        connection: Optional[StoreConnection] = None,
    ):
        if connection is None:
            settings = get_settings().storage
            connection = StoreConnection(
                Path(db_path) if db_path else settings.resolved_db_path,
                retry_attempts=settings.open_retry_attempts,
                retry_max_wait=settings.open_retry_max_wait_seconds,
            )
        self._connection = connection

    @property
    def connection(self) -> StoreConnection:
        return self._connection

    async def open(self) -> Engine:
        return await self._connection.open()

    async def close(self) -> None:
        await self._connection.close()

    async def _run(
        self,
        operation: str,
        fn: Callable[..., T],
        *args,
        error_cls: type[StorageError] = StorageError,
    ) -> T:
        async with self._connection.lease() as engine:
            try:
                return await asyncio.to_thread(fn, engine, *args)
            except SQLAlchemyError as e:
                invalidated = getattr(e, "connection_invalidated", False)
                logger.error(
                    "store_operation_failed",
                    operation=operation,
                    error=str(e),
                    connection_invalidated=invalidated,
                )
                failure = e
        if invalidated:
            await self._connection.invalidate()
        raise error_cls(f"Failed to {operation}: {failure}") from failure

    # -- blocking helpers (run in a worker thread) ---------------------------

    @staticmethod
    def _fetch_all(engine: Engine, table: Table) -> list[tuple[str, str]]:
        with engine.connect() as conn:
            return [tuple(row) for row in conn.execute(select(table.c.key, table.c.payload))]

    @staticmethod
    def _fetch_one(engine: Engine, table: Table, key: str) -> Optional[str]:
        with engine.connect() as conn:
            row = conn.execute(
                select(table.c.payload).where(table.c.key == key)
            ).first()
        return row[0] if row else None

    @staticmethod
    def _write(engine: Engine, table: Table, key: str, payload: str) -> None:
        stmt = sqlite_insert(table).values(key=key, payload=payload)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.key],
            set_={"payload": stmt.excluded.payload},
        )
        with engine.begin() as conn:
            conn.execute(stmt)

    @staticmethod
    def _remove(engine: Engine, table: Table, key: str) -> None:
        with engine.begin() as conn:
            conn.execute(delete(table).where(table.c.key == key))

    @staticmethod
    def _clear_all(engine: Engine) -> None:
        # One transaction: every table ends empty, or none is touched
        with engine.begin() as conn:
            for collection in ALL_COLLECTIONS:
                conn.execute(delete(COLLECTION_TABLES[collection]))

    # -- interface -----------------------------------------------------------

    def _decode(self, collection: Collection, key: str, payload: str) -> Optional[Record]:
        try:
            return collection.model.model_validate_json(payload)
        except ValidationError as e:
            logger.warning(
                "record_decode_failed",
                collection=collection.value,
                key=key,
                error=str(e),
            )
            return None

    async def list_all(self, collection: Collection) -> list[Record]:
        rows = await self._run(
            f"list {collection.value}",
            self._fetch_all,
            COLLECTION_TABLES[collection],
        )
        records = []
        for key, payload in rows:
            record = self._decode(collection, key, payload)
            if record is not None:
                records.append(record)
        return records

    async def get(self, collection: Collection, key: str) -> Optional[Record]:
        payload = await self._run(
            f"get {collection.value}/{key}",
            self._fetch_one,
            COLLECTION_TABLES[collection],
            str(key),
        )
        if payload is None:
            return None
        return self._decode(collection, str(key), payload)

    async def upsert(self, collection: Collection, record: Record) -> None:
        key = record_key(collection, record)
        await self._run(
            f"save {collection.value}/{key}",
            self._write,
            COLLECTION_TABLES[collection],
            key,
            record.model_dump_json(),
        )

    async def delete(self, collection: Collection, key: str) -> None:
        await self._run(
            f"delete {collection.value}/{key}",
            self._remove,
            COLLECTION_TABLES[collection],
            str(key),
        )

    async def reset_all(self) -> None:
        await self._run("clear all collections", self._clear_all, error_cls=ResetFailed)
        logger.info("store_reset", collections=[c.value for c in ALL_COLLECTIONS])
