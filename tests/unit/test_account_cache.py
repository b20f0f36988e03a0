"""Tests for eco_account.domain.cache — bounded LRU account cache."""

import threading
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from src.eco_account.domain.cache import AccountCache, BoundedCache, CacheEntry
from src.eco_ledger.domain.models import Account


T0 = datetime(2026, 1, 1, tzinfo=UTC)
TTL = timedelta(seconds=5)


def _entry(
    uuid: str,
    balance: str = "100.00",
    written: datetime | None = None,
    refreshed: datetime = T0,
) -> CacheEntry:
    account = Account(
        uuid=uuid,
        username=uuid,
        balance=Decimal(balance),
        bank_balance=Decimal("0.00"),
        last_updated=written,
    )
    return CacheEntry(account=account, refreshed_at=refreshed)


class TestBoundedCache:
    def test_put_get(self) -> None:
        cache: BoundedCache[str, int] = BoundedCache(2)
        cache.put("a", 1)
        assert cache.get("a") == 1
        assert cache.get("missing") is None

    def test_evicts_least_recently_used(self) -> None:
        cache: BoundedCache[str, int] = BoundedCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")  # a becomes most recent
        cache.put("c", 3)
        assert "b" not in cache
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.size() == 2

    def test_overwrite_does_not_grow(self) -> None:
        cache: BoundedCache[str, int] = BoundedCache(2)
        cache.put("a", 1)
        cache.put("a", 2)
        assert cache.size() == 1
        assert cache.get("a") == 2

    def test_invalidate_and_clear(self) -> None:
        cache: BoundedCache[str, int] = BoundedCache(5)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.invalidate("a")
        cache.invalidate("never-there")
        assert cache.get("a") is None
        cache.clear()
        assert cache.size() == 0

    def test_rejects_zero_size(self) -> None:
        with pytest.raises(ValueError):
            BoundedCache(0)

    def test_concurrent_puts_respect_bound(self) -> None:
        cache: BoundedCache[int, int] = BoundedCache(50)

        def writer(offset: int) -> None:
            for i in range(500):
                cache.put(offset + i, i)

        threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert cache.size() == 50


class TestAccountCache:
    def test_stores_entries_by_uuid(self) -> None:
        cache = AccountCache(10, TTL)
        cache.put("p1", _entry("p1", "42.00"))
        entry = cache.get("p1")
        assert entry is not None
        assert entry.account.balance == Decimal("42.00")

    def test_get_fresh_honours_ttl(self) -> None:
        cache = AccountCache(10, TTL)
        cache.put("p1", _entry("p1"))
        assert cache.get_fresh("p1", T0 + timedelta(seconds=4)) is not None
        assert cache.get_fresh("p1", T0 + TTL) is None
        assert cache.get_fresh("missing", T0) is None

    def test_put_if_newer_keeps_later_row(self) -> None:
        cache = AccountCache(10, TTL)
        later = _entry("p1", "120.00", written=T0 + timedelta(milliseconds=5))
        earlier = _entry("p1", "110.00", written=T0)
        assert cache.put_if_newer(later) is True
        assert cache.put_if_newer(earlier) is False
        assert cache.get("p1").account.balance == Decimal("120.00")

    def test_put_if_newer_accepts_same_version_refresh(self) -> None:
        cache = AccountCache(10, TTL)
        cache.put_if_newer(_entry("p1", written=T0))
        refreshed = _entry("p1", written=T0, refreshed=T0 + timedelta(minutes=1))
        assert cache.put_if_newer(refreshed) is True
        assert cache.get("p1").refreshed_at == T0 + timedelta(minutes=1)
