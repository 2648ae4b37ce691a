"""
Tests for the in-memory record store and the ledger service on top of it.
"""

import asyncio
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from unibudget.models.categories import CustomCategory
from unibudget.models.ledger import AppTheme, BudgetLimit, SettingRecord
from unibudget.services.ledger import LedgerService
from unibudget.services.storage import (
    Collection,
    InMemoryRecordStore,
    ResetFailed,
    StorageError,
)

from tests.helpers import make_transaction


class TestInMemoryRecordStore:
    """Same contract as the SQLite store."""

    def test_upsert_list_delete(self):
        store = InMemoryRecordStore()
        t = make_transaction()

        async def scenario():
            await store.upsert(Collection.TRANSACTIONS, t)
            listed = await store.list_all(Collection.TRANSACTIONS)
            await store.delete(Collection.TRANSACTIONS, str(t.id))
            await store.delete(Collection.TRANSACTIONS, str(t.id))
            return listed, await store.list_all(Collection.TRANSACTIONS)

        listed, after = asyncio.run(scenario())
        assert listed == [t]
        assert after == []

    def test_records_are_copies(self):
        store = InMemoryRecordStore()
        limit = BudgetLimit(category="Food", limit=Decimal("100"))

        async def scenario():
            await store.upsert(Collection.LIMITS, limit)
            first = await store.get(Collection.LIMITS, "Food")
            first.limit = Decimal("999")
            return await store.get(Collection.LIMITS, "Food")

        assert asyncio.run(scenario()).limit == Decimal("100")

    def test_failing_writes(self):
        store = InMemoryRecordStore()
        store.fail_writes = True

        with pytest.raises(StorageError):
            asyncio.run(store.upsert(Collection.TRANSACTIONS, make_transaction()))

    def test_failed_reset_keeps_data(self):
        store = InMemoryRecordStore()

        async def scenario():
            await store.upsert(Collection.TRANSACTIONS, make_transaction())
            await store.upsert(Collection.SETTINGS, SettingRecord(key="theme", value="dark"))
            store.fail_reset = True
            with pytest.raises(ResetFailed):
                await store.reset_all()
            return [len(await store.list_all(c)) for c in Collection]

        assert asyncio.run(scenario()) == [1, 0, 0, 1]

    def test_reset_clears_all(self):
        store = InMemoryRecordStore()

        async def scenario():
            await store.upsert(Collection.TRANSACTIONS, make_transaction())
            await store.upsert(Collection.CUSTOM_CATEGORIES, CustomCategory(name="Gym"))
            await store.reset_all()
            return [len(await store.list_all(c)) for c in Collection]

        assert asyncio.run(scenario()) == [0, 0, 0, 0]


class TestLedgerService:
    """Typed collection access and CSV flows."""

    def test_theme_defaults_to_system(self):
        service = LedgerService(InMemoryRecordStore())
        assert asyncio.run(service.get_theme()) == AppTheme.SYSTEM

    def test_theme_roundtrip(self):
        service = LedgerService(InMemoryRecordStore())

        async def scenario():
            await service.save_theme(AppTheme.DARK)
            return await service.get_theme()

        assert asyncio.run(scenario()) == AppTheme.DARK

    def test_invalid_stored_theme_falls_back(self):
        store = InMemoryRecordStore()
        service = LedgerService(store)

        async def scenario():
            await store.upsert(Collection.SETTINGS, SettingRecord(key="theme", value="neon"))
            return await service.get_theme()

        assert asyncio.run(scenario()) == AppTheme.SYSTEM

    def test_limits_keyed_by_category(self):
        service = LedgerService(InMemoryRecordStore())

        async def scenario():
            await service.save_limit(BudgetLimit(category="Food", limit=Decimal("300")))
            await service.save_limit(BudgetLimit(category="Food", limit=Decimal("450")))
            await service.save_limit(BudgetLimit(category="Fun", limit=Decimal("100")))
            await service.delete_limit("Fun")
            return await service.get_limits()

        assert asyncio.run(scenario()) == [BudgetLimit(category="Food", limit=Decimal("450"))]

    def test_import_persists_each_row(self):
        store = InMemoryRecordStore()
        service = LedgerService(store, tz=ZoneInfo("UTC"))
        saved = []
        text = "\n".join([
            "Date,Type,Category,Amount,Method,Note",
            '"2024-01-15 10:30","EXPENSE","Food",100,"CASH","a"',
            '"2024-01-15 10:30","EXPENSE","Food",oops,"CASH","b"',
            '"2024-01-16 10:30","INCOME","Allowance",500,"CARD","c"',
        ])

        async def scenario():
            result = await service.import_from_text(text, on_saved=saved.append)
            return result, await service.get_transactions()

        result, stored = asyncio.run(scenario())
        assert result.imported_count == 2
        assert result.skipped_count == 1
        assert result.message == "Successfully imported 2 transactions."
        assert [t.note for t in saved] == ["a", "c"]
        assert sorted(t.note for t in stored) == ["a", "c"]

    def test_import_nothing_valid(self):
        service = LedgerService(InMemoryRecordStore(), tz=ZoneInfo("UTC"))
        text = 'Date,Type,Category,Amount,Method,Note\n"15/01/2024","EXPENSE","Food",1,"CASH",""'
        result = asyncio.run(service.import_from_text(text))
        assert result.imported_count == 0
        assert result.message.startswith("No valid transactions found to import.")

    def test_import_failure_keeps_prefix(self):
        store = InMemoryRecordStore()
        service = LedgerService(store, tz=ZoneInfo("UTC"))
        text = "\n".join([
            "Date,Type,Category,Amount,Method,Note",
            '"2024-01-15 10:30","EXPENSE","Food",1,"CASH","first"',
            '"2024-01-15 10:31","EXPENSE","Food",2,"CASH","second"',
        ])

        def stop_after_first(_):
            store.fail_writes = True

        async def scenario():
            with pytest.raises(StorageError):
                await service.import_from_text(text, on_saved=stop_after_first)
            store.fail_writes = False
            return await service.get_transactions()

        assert [t.note for t in asyncio.run(scenario())] == ["first"]

    def test_export_uses_service_zone(self):
        service = LedgerService(InMemoryRecordStore(), tz=ZoneInfo("Asia/Kolkata"))
        text = service.export_to_text([make_transaction()])
        assert text.split("\n")[1].startswith('"2024-01-15 16:00"')
