"""
Ledger Coordinator

Ties the components together and owns the in-memory view the UI renders:
cached collections, derived summaries, validated entry operations and
file import/export.

WRITE FLOW (two-phase):
1. Validate the entry (rejected entries never reach the store)
2. Apply the change to the in-memory cache
3. Durable write through the ledger service
4. On failure: revert the cache, notify subscribers with a
   ReconciliationEvent, audit it, re-raise

Derived views (summary, budget statuses, monthly report) are recomputed
from the cache on every call; nothing derived is stored.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from unibudget.agents import FinancialAdvisor
from unibudget.audit import AuditLogger, configure_logging
from unibudget.config import get_settings
from unibudget.models.audit import AuditEventBuilder
from unibudget.models.categories import (
    CategoryInfo,
    CustomCategory,
    CustomIcon,
    DEFAULT_CUSTOM_COLOR,
    all_category_names,
    resolve_category,
)
from unibudget.models.ledger import (
    AppTheme,
    BudgetLimit,
    BudgetStatus,
    FinancialSummary,
    ImportResult,
    MonthlyReport,
    Transaction,
    TransactionDraft,
    ValidationResult,
    utc_now,
)
from unibudget.queries import (
    local_now,
    monthly_report,
    summarize,
    track_budgets,
)
from unibudget.services.backup import export_filename
from unibudget.services.backup.csv_codec import from_local
from unibudget.services.ledger import LedgerService
from unibudget.services.storage import (
    Collection,
    InMemoryRecordStore,
    RecordNotFound,
    ResetFailed,
    SQLiteRecordStore,
    StorageError,
    StoreUnavailable,
)
from unibudget.validation import LedgerValidationError, TransactionValidator


logger = structlog.get_logger(__name__)


class ReconciliationEvent(BaseModel):
    """
    Emitted when a durable write fails after the cache was changed.

    The cache has already been reverted when subscribers see this.
    """

    operation: str
    collection: Collection
    key: Optional[str] = None
    error: str
    occurred_at: datetime = Field(default_factory=utc_now)


Subscriber = Callable[[ReconciliationEvent], None]


class _CacheSnapshot(BaseModel):
    transactions: list[Transaction]
    limits: list[BudgetLimit]
    custom_categories: list[CustomCategory]
    theme: AppTheme


class LedgerCoordinator:
    """
    In-memory ledger state backed by a record store.

    Call ``load()`` once before using the cached views.
    """

    def __init__(
        self,
        service: LedgerService,
        validator: Optional[TransactionValidator] = None,
        advisor: Optional[FinancialAdvisor] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._service = service
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._advisor = advisor or FinancialAdvisor(audit_logger=self._audit_logger)
        self._clock = clock or (lambda: local_now(service.tz))
        self._subscribers: list[Subscriber] = []

        self._transactions: list[Transaction] = []
        self._limits: list[BudgetLimit] = []
        self._custom_categories: list[CustomCategory] = []
        self._theme = AppTheme.SYSTEM

    # -- cached views --------------------------------------------------------

    @property
    def service(self) -> LedgerService:
        return self._service

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def limits(self) -> list[BudgetLimit]:
        return list(self._limits)

    @property
    def custom_categories(self) -> list[CustomCategory]:
        return list(self._custom_categories)

    @property
    def theme(self) -> AppTheme:
        return self._theme

    async def load(self) -> None:
        """Fetch all four collections concurrently into the cache."""
        transactions, limits, custom_categories, theme = await asyncio.gather(
            self._service.get_transactions(),
            self._service.get_limits(),
            self._service.get_custom_categories(),
            self._service.get_theme(),
        )
        self._transactions = transactions
        self._limits = limits
        self._custom_categories = custom_categories
        self._theme = theme
        logger.info(
            "ledger_loaded",
            transactions=len(transactions),
            limits=len(limits),
            custom_categories=len(custom_categories),
        )

    async def close(self) -> None:
        await self._service.store.close()

    # -- reconciliation ------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register for reconciliation events.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _snapshot(self) -> _CacheSnapshot:
        return _CacheSnapshot(
            transactions=list(self._transactions),
            limits=list(self._limits),
            custom_categories=list(self._custom_categories),
            theme=self._theme,
        )

    def _restore(self, snapshot: _CacheSnapshot) -> None:
        self._transactions = snapshot.transactions
        self._limits = snapshot.limits
        self._custom_categories = snapshot.custom_categories
        self._theme = snapshot.theme

    async def _reconcile(
        self,
        operation: str,
        collection: Collection,
        key: Optional[str],
        error: StorageError,
    ) -> None:
        event = ReconciliationEvent(
            operation=operation,
            collection=collection,
            key=key,
            error=str(error),
        )
        logger.warning(
            "write_reverted",
            operation=operation,
            collection=collection.value,
            key=key,
            error=str(error),
        )
        await self._audit_logger.log_write_failed(
            operation=operation,
            collection=collection.value,
            record_key=key,
            error_message=str(error),
        )
        for callback in list(self._subscribers):
            callback(event)

    async def _write_through(
        self,
        operation: str,
        collection: Collection,
        key: Optional[str],
        apply: Callable[[], None],
        write: Callable[[], Awaitable[None]],
    ) -> None:
        """Apply a cache change, persist it, and revert if persisting fails."""
        snapshot = self._snapshot()
        apply()
        try:
            await write()
        except StorageError as e:
            self._restore(snapshot)
            await self._reconcile(operation, collection, key, e)
            raise

    async def _reject(self, operation: str, result: ValidationResult) -> None:
        await self._audit_logger.log_validation_failed(
            operation=operation,
            issues=[issue.model_dump() for issue in result.issues],
        )
        raise LedgerValidationError(result)

    # -- transactions --------------------------------------------------------

    def find_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        for t in self._transactions:
            if t.id == transaction_id:
                return t
        return None

    async def save_transaction(
        self,
        draft: TransactionDraft,
        transaction_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Create a transaction, or replace one when ``transaction_id`` is given.

        New transactions go to the front of the list; edits keep their
        position.

        Raises:
            LedgerValidationError: the draft failed validation
            RecordNotFound: ``transaction_id`` is not in the ledger
            StorageError: the durable write failed (cache reverted)
        """
        existing = None
        if transaction_id is not None:
            existing = self.find_transaction(transaction_id)
            if existing is None:
                raise RecordNotFound(f"Transaction {transaction_id} not found")

        # form input without an offset is local wall-clock time
        if draft.date is not None and draft.date.tzinfo is None:
            draft = draft.model_copy(update={"date": from_local(draft.date, self._service.tz)})

        result = self._validator.validate_transaction(draft, self.summary(), existing)
        if not result.is_valid:
            await self._reject("save_transaction", result)

        transaction = Transaction.from_draft(draft, transaction_id)

        def apply() -> None:
            if existing is None:
                self._transactions.insert(0, transaction)
            else:
                index = self._transactions.index(existing)
                self._transactions[index] = transaction

        await self._write_through(
            "save_transaction",
            Collection.TRANSACTIONS,
            str(transaction.id),
            apply,
            lambda: self._service.save_transaction(transaction),
        )
        await self._audit_logger.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction.id,
            amount=str(transaction.amount),
            transaction_type=transaction.type.value,
            is_new=existing is None,
        ))
        return transaction

    async def delete_transaction(self, transaction_id: UUID) -> None:
        """Remove a transaction; unknown IDs are a no-op."""

        def apply() -> None:
            self._transactions = [t for t in self._transactions if t.id != transaction_id]

        await self._write_through(
            "delete_transaction",
            Collection.TRANSACTIONS,
            str(transaction_id),
            apply,
            lambda: self._service.delete_transaction(transaction_id),
        )
        await self._audit_logger.log(AuditEventBuilder.transaction_deleted(transaction_id))

    # -- limits --------------------------------------------------------------

    async def update_limit(self, limit: BudgetLimit) -> None:
        """Set the limit for a category, replacing any existing one."""
        result = self._validator.validate_limit(limit)
        if not result.is_valid:
            await self._reject("update_limit", result)

        def apply() -> None:
            for index, existing in enumerate(self._limits):
                if existing.category == limit.category:
                    self._limits[index] = limit
                    return
            self._limits.append(limit)

        await self._write_through(
            "update_limit",
            Collection.LIMITS,
            limit.category,
            apply,
            lambda: self._service.save_limit(limit),
        )
        await self._audit_logger.log(
            AuditEventBuilder.limit_saved(limit.category, str(limit.limit))
        )

    async def remove_limit(self, category: str) -> None:
        def apply() -> None:
            self._limits = [limit for limit in self._limits if limit.category != category]

        await self._write_through(
            "remove_limit",
            Collection.LIMITS,
            category,
            apply,
            lambda: self._service.delete_limit(category),
        )
        await self._audit_logger.log(AuditEventBuilder.limit_deleted(category))

    # -- custom categories ---------------------------------------------------

    async def add_custom_category(
        self,
        name: str,
        icon_key: Union[CustomIcon, str] = CustomIcon.STAR,
        color: str = DEFAULT_CUSTOM_COLOR,
    ) -> CustomCategory:
        result = self._validator.validate_custom_category(name)
        if not result.is_valid:
            await self._reject("add_custom_category", result)

        category = CustomCategory(name=name, icon_key=CustomIcon(icon_key), color=color)

        await self._write_through(
            "add_custom_category",
            Collection.CUSTOM_CATEGORIES,
            str(category.id),
            lambda: self._custom_categories.append(category),
            lambda: self._service.save_custom_category(category),
        )
        await self._audit_logger.log(
            AuditEventBuilder.custom_category_saved(category.id, category.name)
        )
        return category

    # -- settings ------------------------------------------------------------

    async def change_theme(self, theme: Union[AppTheme, str]) -> None:
        theme = AppTheme(theme)

        def apply() -> None:
            self._theme = theme

        await self._write_through(
            "change_theme",
            Collection.SETTINGS,
            "theme",
            apply,
            lambda: self._service.save_theme(theme),
        )
        await self._audit_logger.log(AuditEventBuilder.theme_saved(theme.value))

    async def reset(self) -> None:
        """
        Clear every collection.

        The cache is only cleared once the atomic reset has succeeded;
        on ResetFailed nothing changes, in the store or here.
        """
        try:
            await self._service.clear_all_data()
        except ResetFailed as e:
            await self._audit_logger.log(AuditEventBuilder.reset_failed(str(e)))
            raise

        self._transactions = []
        self._limits = []
        self._custom_categories = []
        self._theme = AppTheme.SYSTEM
        await self._audit_logger.log(AuditEventBuilder.data_reset())

    # -- import / export -----------------------------------------------------

    async def import_text(self, csv_text: str) -> ImportResult:
        """
        Import CSV text.

        The imported block goes to the front of the cache in file order.
        Each row is added once it is durably saved, so a failure part way
        through keeps the saved prefix.
        """
        saved = 0

        def on_saved(transaction: Transaction) -> None:
            nonlocal saved
            self._transactions.insert(saved, transaction)
            saved += 1

        try:
            result = await self._service.import_from_text(csv_text, on_saved=on_saved)
        except StorageError as e:
            await self._reconcile("import", Collection.TRANSACTIONS, None, e)
            raise

        await self._audit_logger.log(
            AuditEventBuilder.import_completed(result.imported_count, result.skipped_count)
        )
        return result

    async def import_file(self, path: Union[str, Path]) -> ImportResult:
        text = await asyncio.to_thread(Path(path).read_text, encoding="utf-8")
        return await self.import_text(text)

    def export_text(self) -> str:
        return self._service.export_to_text(self._transactions)

    async def export_file(self, directory: Union[str, Path]) -> Path:
        """Write the export into ``directory`` under a dated filename."""
        directory = Path(directory)
        target = directory / export_filename(self._clock())
        text = self.export_text()

        def write() -> None:
            directory.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")

        await asyncio.to_thread(write)
        await self._audit_logger.log(
            AuditEventBuilder.export_completed(len(self._transactions), str(target))
        )
        return target

    # -- derived views -------------------------------------------------------

    def summary(self) -> FinancialSummary:
        return summarize(self._transactions)

    def budget_statuses(self) -> list[BudgetStatus]:
        return track_budgets(self._limits, self._transactions, self._clock())

    def monthly_report(self, year: int, month: int) -> MonthlyReport:
        return monthly_report(
            self._transactions,
            year,
            month,
            tz=self._service.tz,
            now=self._clock(),
        )

    def resolve_category(self, name: str) -> CategoryInfo:
        return resolve_category(name, self._custom_categories)

    def category_names(self) -> list[str]:
        return all_category_names(self._custom_categories)

    async def get_advice(self) -> str:
        return await self._advisor.get_advice(self._transactions)


async def create_coordinator(
    db_path: Optional[Union[str, Path]] = None,
) -> LedgerCoordinator:
    """
    Factory function to create a loaded coordinator.

    Opens the SQLite store at ``db_path`` (or the configured path). If the
    store cannot be opened the session falls back to an in-memory store:
    the ledger works, but nothing survives a restart.
    """
    configure_logging()
    settings = get_settings()
    audit_logger = AuditLogger()

    store: Union[SQLiteRecordStore, InMemoryRecordStore]
    store = SQLiteRecordStore(Path(db_path) if db_path else None)
    try:
        await store.open()
    except StoreUnavailable as e:
        logger.warning("store_unavailable_using_memory", error=str(e))
        await audit_logger.log(AuditEventBuilder.store_degraded(str(e)))
        store = InMemoryRecordStore()
        await store.open()

    service = LedgerService(store, tz=settings.app.tzinfo)
    coordinator = LedgerCoordinator(service, audit_logger=audit_logger)
    await coordinator.load()
    logger.info(
        "coordinator_ready",
        environment=settings.app.app_environment,
        store=type(store).__name__,
    )
    return coordinator
