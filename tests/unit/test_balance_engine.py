"""Unit tests for BalanceEngine against the in-memory transactional store."""

import random
from datetime import datetime, timedelta
from decimal import Decimal

from src.eco_account.application.service import BalanceEngine
from src.eco_auction.application.service import AuctionEngine
from src.eco_auction.domain.models import AuctionItem
from src.eco_common.enums import BalanceKind
from src.eco_ledger.domain.models import Account
from tests.unit.fakes import (
    FakeAccountRepository,
    FakeAuctionRepository,
    FakeTransactionLogRepository,
)

LIQUID = BalanceKind.LIQUID
BANK = BalanceKind.BANK


class TestGetBalance:
    async def test_lazily_creates_account(self, balances, store) -> None:
        assert await balances.get_balance("p1") == Decimal("100.00")
        assert await balances.get_balance("p1", BANK) == Decimal("0.00")
        assert "p1" in store.players
        assert store.players["p1"].username == "Unknown"

    async def test_reads_through_cache(self, balances, store) -> None:
        await balances.get_balance("p1")
        store.fail_on.add("get_account")
        # Served from the cache, so the injected failure is never hit
        assert await balances.get_balance("p1") == Decimal("100.00")
        assert "get_account" in store.fail_on

    async def test_storage_failure_returns_zero(self, balances, store) -> None:
        store.fail_on.add("get_account")
        assert await balances.get_balance("p1") == Decimal("0.00")
        assert "p1" not in store.players


class TestSetBalance:
    async def test_sets_and_rounds(self, balances, store) -> None:
        assert await balances.set_balance("p1", LIQUID, "250.005") is True
        assert store.players["p1"].balance == Decimal("250.01")
        assert await balances.get_balance("p1") == Decimal("250.01")
        [record] = store.records_of("balance_set")
        assert record.to_uuid == "p1"
        assert record.amount == Decimal("250.01")

    async def test_rejects_negative(self, balances, store) -> None:
        assert await balances.set_balance("p1", LIQUID, "-1") is False
        assert store.transactions == []

    async def test_rejects_over_cap_liquid_only(self, balances, settings) -> None:
        over = settings.MAX_BALANCE + 1
        assert await balances.set_balance("p1", LIQUID, over) is False
        assert await balances.set_balance("p1", BANK, over) is True

    async def test_storage_failure_rolls_back(self, balances, store) -> None:
        await balances.get_balance("p1")
        store.fail_on.add("append")
        assert await balances.set_balance("p1", LIQUID, "5") is False
        assert store.players["p1"].balance == Decimal("100.00")
        assert store.rollbacks == 1
        assert await balances.get_balance("p1") == Decimal("100.00")


class TestAddRemove:
    async def test_add_money(self, balances, store) -> None:
        assert await balances.add_money("p1", LIQUID, "25.50") is True
        assert store.players["p1"].balance == Decimal("125.50")
        assert store.players["p1"].total_earned == Decimal("25.50")
        [record] = store.records_of("deposit")
        assert record.from_uuid is None
        assert record.amount == Decimal("25.50")

    async def test_remove_money(self, balances, store) -> None:
        assert await balances.remove_money("p1", LIQUID, "40") is True
        assert store.players["p1"].balance == Decimal("60.00")
        assert store.players["p1"].total_spent == Decimal("40.00")

    async def test_remove_more_than_available_floors_at_zero(self, balances, store) -> None:
        assert await balances.remove_money("p1", LIQUID, "500") is True
        assert store.players["p1"].balance == Decimal("0.00")
        [record] = store.records_of("withdrawal")
        assert record.amount == Decimal("100.00")  # what was actually removed

    async def test_add_past_cap_saturates(self, balances, store, settings) -> None:
        await balances.set_balance("p1", LIQUID, settings.MAX_BALANCE - 1)
        assert await balances.add_money("p1", LIQUID, "50") is True
        assert store.players["p1"].balance == settings.MAX_BALANCE
        assert store.records_of("deposit")[-1].amount == Decimal("1.00")

    async def test_bank_add_is_unbounded(self, balances, store, settings) -> None:
        await balances.set_balance("p1", BANK, settings.MAX_BALANCE)
        assert await balances.add_money("p1", BANK, "10") is True
        assert store.players["p1"].bank_balance == settings.MAX_BALANCE + 10

    async def test_rejects_non_positive(self, balances, store) -> None:
        assert await balances.add_money("p1", LIQUID, "0") is False
        assert await balances.remove_money("p1", LIQUID, "-5") is False
        assert await balances.add_money("p1", LIQUID, "abc") is False
        assert store.transactions == []

    async def test_random_sequence_stays_in_range(self, balances, store, settings) -> None:
        await balances.set_balance("p1", LIQUID, settings.MAX_BALANCE - 100)
        rng = random.Random(7)
        for _ in range(60):
            amount = Decimal(rng.randint(1, 400))
            if rng.random() < 0.5:
                await balances.add_money("p1", LIQUID, amount)
            else:
                await balances.remove_money("p1", LIQUID, amount * 1000)
            balance = store.players["p1"].balance
            assert Decimal("0") <= balance <= settings.MAX_BALANCE

    async def test_cache_tracks_committed_value(self, balances) -> None:
        await balances.add_money("p1", LIQUID, "5")
        entry = balances.cache.get("p1")
        assert entry is not None
        assert entry.account.balance == Decimal("105.00")


class TestHas:
    async def test_has(self, balances) -> None:
        assert await balances.has("p1", LIQUID, "100") is True
        assert await balances.has("p1", LIQUID, "100.01") is False
        assert await balances.has("p1", LIQUID, "junk") is False


class TestQueries:
    async def test_ensure_account_updates_username(self, balances, store) -> None:
        await balances.ensure_account("p1", "Steve")
        await balances.ensure_account("p1", "Alex_the_very_long_name")
        assert store.players["p1"].username == "Alex_the_very_lo"
        assert store.players["p1"].balance == Decimal("100.00")

    async def test_top_balances(self, balances) -> None:
        await balances.set_balance("a", LIQUID, "10")
        await balances.set_balance("b", LIQUID, "30")
        await balances.set_balance("c", LIQUID, "20")
        top = await balances.get_top_balances(2)
        assert [a.uuid for a in top] == ["b", "c"]

    async def test_total_money(self, balances, store) -> None:
        await balances.get_balance("a")
        await balances.get_balance("b")
        assert await balances.get_total_money() == Decimal("200.00")
        store.fail_on.add("total_money")
        assert await balances.get_total_money() == Decimal("0.00")

    async def test_transaction_history_pages_newest_first(self, balances) -> None:
        for n in range(5):
            await balances.add_money("p1", LIQUID, n + 1)
        first = await balances.get_transaction_history("p1", limit=3)
        assert [r.amount for r in first] == [Decimal(5), Decimal(4), Decimal(3)]
        second = await balances.get_transaction_history("p1", limit=3, before_id=first[-1].id)
        assert [r.amount for r in second] == [Decimal(2), Decimal(1)]


class TestLockAccounts:
    async def test_locks_in_sorted_order(self, balances, session_factory, store) -> None:
        async with session_factory() as db:
            locked = await balances.lock_accounts(db, ["zed", "amy", "mo", "amy"])
            await db.commit()
        assert list(locked) == ["amy", "mo", "zed"]
        order = [uuid for kind, uuid in store.lock_log if kind == "account"]
        assert list(dict.fromkeys(order)) == ["amy", "mo", "zed"]


def _engine_pair(session_factory, settings, store, clock):
    """A second BalanceEngine/AuctionEngine over the same store, as the worker has."""
    balances = BalanceEngine(
        session_factory,
        settings,
        repo=FakeAccountRepository(store),
        log_repo=FakeTransactionLogRepository(store),
        clock=clock,
    )
    auctions = AuctionEngine(
        session_factory, settings, balances, repo=FakeAuctionRepository(store), clock=clock
    )
    return balances, auctions


class TestCacheFreshness:
    async def test_write_by_other_engine_visible_after_ttl(
        self, balances, session_factory, settings, store, clock
    ) -> None:
        worker_balances, worker_auctions = _engine_pair(session_factory, settings, store, clock)
        await worker_balances.set_balance("A", LIQUID, "500")
        created = await worker_auctions.create_auction(
            "seller", AuctionItem("Bow", "{}"), "100", None, 3600, "misc"
        )
        assert await worker_auctions.place_bid("A", created.value.id, "105")
        clock.advance(3600)

        assert await balances.get_balance("seller") == Decimal("100.00")
        summary = await worker_auctions.process_ended_auctions()
        assert summary.sold == 1
        assert store.players["seller"].balance == Decimal("199.75")

        clock.advance(settings.CACHE_TTL_SECONDS)
        assert await balances.get_balance("seller") == Decimal("199.75")

    async def test_fresh_entry_served_without_reading(self, balances, store, clock) -> None:
        await balances.get_balance("p1")
        clock.advance(1)
        store.fail_on.add("get_account")
        assert await balances.get_balance("p1") == Decimal("100.00")

    async def test_zero_ttl_always_rereads(
        self, session_factory, settings, store, clock
    ) -> None:
        uncached, _ = _engine_pair(
            session_factory, settings.model_copy(update={"CACHE_TTL_SECONDS": 0}), store, clock
        )
        await uncached.get_balance("p1")
        store.players["p1"].balance = Decimal("7.00")
        assert await uncached.get_balance("p1") == Decimal("7.00")


class TestPublishOrdering:
    def _row(self, balance: str, written: datetime) -> Account:
        return Account(
            uuid="p1",
            username="Steve",
            balance=Decimal(balance),
            bank_balance=Decimal("0.00"),
            last_updated=written,
        )

    async def test_late_older_row_does_not_overwrite(self, balances, clock) -> None:
        first = self._row("110.00", clock.now)
        second = self._row("120.00", clock.now + timedelta(milliseconds=3))
        balances.publish([second])
        balances.publish([first])  # earlier writer publishes last
        assert await balances.get_balance("p1") == Decimal("120.00")

    async def test_newer_row_overwrites(self, balances, clock) -> None:
        balances.publish([self._row("110.00", clock.now)])
        balances.publish([self._row("120.00", clock.now + timedelta(seconds=1))])
        assert await balances.get_balance("p1") == Decimal("120.00")
