"""
Ledger Service

The bulk-read / keyed-write API the coordinator uses. One method per
collection operation, plus CSV import/export routed through the same
record store.

Each write is awaited to completion before returning; nothing here keeps
state besides the store reference.
"""

from datetime import tzinfo
from typing import Callable, Iterable, Optional
from uuid import UUID, uuid4

import structlog

from unibudget.models.categories import CustomCategory
from unibudget.models.ledger import (
    AppTheme,
    BudgetLimit,
    ImportResult,
    SettingRecord,
    THEME_SETTING_KEY,
    Transaction,
)
from unibudget.services.backup.csv_codec import (
    export_transactions,
    import_summary_message,
    parse_transactions,
)
from unibudget.services.storage import (
    Collection,
    RecordStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LedgerService:
    """Typed access to the four collections of a record store."""

    def __init__(
        self,
        store: RecordStoreInterface,
        tz: Optional[tzinfo] = None,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        self._store = store
        self._tz = tz
        self._id_factory = id_factory

    @property
    def store(self) -> RecordStoreInterface:
        return self._store

    @property
    def tz(self) -> Optional[tzinfo]:
        return self._tz

    # -- bulk reads ----------------------------------------------------------

    async def get_transactions(self) -> list[Transaction]:
        return await self._store.list_all(Collection.TRANSACTIONS)

    async def get_limits(self) -> list[BudgetLimit]:
        return await self._store.list_all(Collection.LIMITS)

    async def get_custom_categories(self) -> list[CustomCategory]:
        return await self._store.list_all(Collection.CUSTOM_CATEGORIES)

    async def get_theme(self) -> AppTheme:
        """Stored theme, ``system`` when absent or unreadable."""
        try:
            record = await self._store.get(Collection.SETTINGS, THEME_SETTING_KEY)
        except StorageError as e:
            logger.warning("theme_read_failed", error=str(e))
            return AppTheme.SYSTEM
        if record is None:
            return AppTheme.SYSTEM
        try:
            return AppTheme(record.value)
        except ValueError:
            logger.warning("theme_value_invalid", value=record.value)
            return AppTheme.SYSTEM

    # -- keyed writes --------------------------------------------------------

    async def save_transaction(self, transaction: Transaction) -> None:
        await self._store.upsert(Collection.TRANSACTIONS, transaction)

    async def delete_transaction(self, transaction_id: UUID) -> None:
        await self._store.delete(Collection.TRANSACTIONS, str(transaction_id))

    async def save_limit(self, limit: BudgetLimit) -> None:
        await self._store.upsert(Collection.LIMITS, limit)

    async def delete_limit(self, category: str) -> None:
        await self._store.delete(Collection.LIMITS, category)

    async def save_custom_category(self, category: CustomCategory) -> None:
        await self._store.upsert(Collection.CUSTOM_CATEGORIES, category)

    async def save_theme(self, theme: AppTheme) -> None:
        await self._store.upsert(
            Collection.SETTINGS,
            SettingRecord(key=THEME_SETTING_KEY, value=AppTheme(theme).value),
        )

    async def clear_all_data(self) -> None:
        """Atomic reset of all four collections."""
        await self._store.reset_all()

    # -- CSV -----------------------------------------------------------------

    def export_to_text(self, transactions: Iterable[Transaction]) -> str:
        return export_transactions(transactions, self._tz)

    async def import_from_text(
        self,
        csv_text: str,
        on_saved: Optional[Callable[[Transaction], None]] = None,
    ) -> ImportResult:
        """
        Parse CSV text and persist every accepted row, one at a time.

        Rows are written in file order; a failure part way through leaves
        the rows before it saved and propagates the StorageError.
        ``on_saved`` is called after each row is durably written.
        """
        parsed = parse_transactions(csv_text, self._tz, self._id_factory)

        for transaction in parsed.transactions:
            await self._store.upsert(Collection.TRANSACTIONS, transaction)
            if on_saved is not None:
                on_saved(transaction)

        imported = len(parsed.transactions)
        logger.info(
            "csv_import_finished",
            imported=imported,
            skipped=parsed.skipped_count,
        )
        return ImportResult(
            imported_count=imported,
            skipped_count=parsed.skipped_count,
            message=import_summary_message(imported),
        )
