"""Tests for the in-memory and SQLite credit stores."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from projecthub_ai.constants import LedgerAction
from projecthub_ai.credits.meter import CreditMeter
from projecthub_ai.exceptions import ValidationError
from projecthub_ai.storage import create_stores
from projecthub_ai.storage.connection import SQLiteConnection
from projecthub_ai.storage.memory import InMemoryChatHistoryStore, InMemoryCreditStore
from projecthub_ai.storage.sqlite import SQLiteChatHistoryStore, SQLiteCreditStore

DAY_ONE = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
LATER_DAY = DAY_ONE + timedelta(days=2)


@pytest.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    if request.param == "memory":
        credit_store = InMemoryCreditStore(meter=CreditMeter(500), daily_limit=5)
    else:
        credit_store = SQLiteCreditStore(SQLiteConnection(str(tmp_path / "credits.db")), daily_limit=5)
    await credit_store.initialize()
    yield credit_store
    await credit_store.close()


class TestCreditStore:
    @pytest.mark.asyncio
    async def test_new_account_gets_daily_limit(self, store):
        account = await store.get_or_create("alice", DAY_ONE)
        assert account.user_id == "alice"
        assert account.balance == 5
        assert account.daily_limit == 5
        assert account.is_premium is False

    @pytest.mark.asyncio
    async def test_debit(self, store):
        await store.get_or_create("alice", DAY_ONE)
        applied, account = await store.debit("alice", 0.5, DAY_ONE)
        assert applied is True
        assert account.balance == 4.5
        assert account.lifetime_used == 0.5

    @pytest.mark.asyncio
    async def test_debit_refused_when_short(self, store):
        await store.get_or_create("alice", DAY_ONE)
        for _ in range(5):
            await store.debit("alice", 1.0, DAY_ONE)

        applied, account = await store.debit("alice", 0.5, DAY_ONE)
        assert applied is False
        assert account.balance == 0

    @pytest.mark.asyncio
    async def test_concurrent_debits_never_overdraw(self, store):
        await store.get_or_create("alice", DAY_ONE)

        results = await asyncio.gather(*[store.debit("alice", 1.0, DAY_ONE) for _ in range(12)])

        assert sum(1 for applied, _ in results if applied) == 5
        account = await store.get_or_create("alice", DAY_ONE)
        assert account.balance == 0
        assert account.lifetime_used == 5

    @pytest.mark.asyncio
    async def test_daily_reset(self, store):
        await store.get_or_create("alice", DAY_ONE)
        await store.debit("alice", 1.0, DAY_ONE)

        account = await store.ensure_daily_reset("alice", LATER_DAY)
        assert account.balance == 5

        again = await store.ensure_daily_reset("alice", LATER_DAY + timedelta(minutes=1))
        assert again.balance == 5
        history = await store.history("alice")
        assert [e.action for e in history].count(LedgerAction.RESET) == 1

    @pytest.mark.asyncio
    async def test_concurrent_resets_apply_once(self, store):
        await store.get_or_create("alice", DAY_ONE)
        await store.debit("alice", 2.0, DAY_ONE)

        await asyncio.gather(*[store.ensure_daily_reset("alice", LATER_DAY) for _ in range(5)])

        history = await store.history("alice")
        assert [e.action for e in history].count(LedgerAction.RESET) == 1

    @pytest.mark.asyncio
    async def test_history_newest_first(self, store):
        await store.get_or_create("alice", DAY_ONE)
        await store.debit("alice", 0.5, DAY_ONE)
        await store.debit("alice", 1.0, DAY_ONE)

        history = await store.history("alice")
        assert [e.delta for e in history] == [-1.0, -0.5]
        assert len(await store.history("alice", limit=1)) == 1

    @pytest.mark.asyncio
    async def test_history_unknown_user(self, store):
        assert await store.history("nobody") == []

    @pytest.mark.asyncio
    async def test_premium(self, store):
        await store.get_or_create("alice", DAY_ONE)
        account = await store.activate_premium("alice")
        assert account.is_premium is True

        applied, account = await store.debit("alice", 1.0, DAY_ONE)
        assert applied is True
        assert account.balance == 5
        assert account.lifetime_used == 1.0

    @pytest.mark.asyncio
    async def test_grant(self, store):
        await store.get_or_create("alice", DAY_ONE)
        account = await store.grant("alice", 10, "Support credit")
        assert account.balance == 15
        history = await store.history("alice")
        assert history[0].action is LedgerAction.ADMIN_ADD
        assert history[0].note == "Support credit"

    @pytest.mark.asyncio
    async def test_grant_must_be_positive(self, store):
        with pytest.raises(ValidationError):
            await store.grant("alice", -1)

    @pytest.mark.asyncio
    async def test_returned_account_is_a_copy(self, store):
        account = await store.get_or_create("alice", DAY_ONE)
        account.balance = 0
        fresh = await store.get_or_create("alice", DAY_ONE)
        assert fresh.balance == 5


class TestSQLitePersistence:
    @pytest.mark.asyncio
    async def test_survives_reconnect(self, tmp_path):
        path = str(tmp_path / "credits.db")
        first = SQLiteCreditStore(SQLiteConnection(path), daily_limit=5)
        await first.initialize()
        await first.get_or_create("bob", DAY_ONE)
        await first.debit("bob", 2.0, DAY_ONE)
        await first.close()

        second = SQLiteCreditStore(SQLiteConnection(path), daily_limit=5)
        await second.initialize()
        account = await second.get_or_create("bob", DAY_ONE)
        assert account.balance == 3
        await second.close()


class TestCreateStores:
    def test_memory_backend(self, test_settings):
        credit_store, history_store = create_stores(test_settings)
        assert isinstance(credit_store, InMemoryCreditStore)
        assert isinstance(history_store, InMemoryChatHistoryStore)
        assert credit_store.daily_limit == test_settings.daily_credit_limit

    def test_sqlite_backend_shares_connection(self, test_settings):
        settings = test_settings.model_copy(update={"storage_backend": "sqlite"})
        credit_store, history_store = create_stores(settings)
        assert isinstance(credit_store, SQLiteCreditStore)
        assert isinstance(history_store, SQLiteChatHistoryStore)
        assert credit_store.connection is history_store.connection
