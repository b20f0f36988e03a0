"""Account cache: bounded, typed, in-memory mirror of hot account rows.

Read path (cache-aside): check cache -> DB on miss -> populate cache.
Write path: DB commit first, then BalanceEngine.publish() overwrites the entry
unless the cached row is newer (players.last_updated is the row version).
The cache is never used for sufficiency checks; those re-read the row under
its lock inside the same transaction as the debit.

Guarded by a threading.Lock so it is safe to share between the event loop and
worker threads of the host.
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

from src.eco_ledger.domain.models import Account

K = TypeVar("K")
V = TypeVar("V")


class BoundedCache(Generic[K, V]):
    """LRU map with a hard size bound. Oldest-used entry is evicted first."""

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._max_size = max_size
        self._data: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: K) -> V | None:
        with self._lock:
            value = self._data.get(key)
            if value is not None:
                self._data.move_to_end(key)
            return value

    def put(self, key: K, value: V) -> None:
        with self._lock:
            self._store(key, value)

    def invalidate(self, key: K) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def _store(self, key: K, value: V) -> None:
        # Caller holds self._lock.
        self._data[key] = value
        self._data.move_to_end(key)
        while len(self._data) > self._max_size:
            self._data.popitem(last=False)


@dataclass(frozen=True)
class CacheEntry:
    account: Account
    refreshed_at: datetime


def _written_before(candidate: Account, cached: Account) -> bool:
    if candidate.last_updated is None or cached.last_updated is None:
        return False
    return candidate.last_updated < cached.last_updated


class AccountCache(BoundedCache[str, CacheEntry]):
    """uuid -> CacheEntry. Only BalanceEngine writes to it.

    Other processes (the scheduler worker) write the same rows without
    touching this cache, so an entry is only trusted for `ttl` after it was
    refreshed; past that the engine re-reads the row.
    """

    def __init__(self, max_size: int, ttl: timedelta) -> None:
        super().__init__(max_size)
        self._ttl = ttl

    def get_fresh(self, uuid: str, now: datetime) -> CacheEntry | None:
        entry = self.get(uuid)
        if entry is None or now - entry.refreshed_at >= self._ttl:
            return None
        return entry

    def put_if_newer(self, entry: CacheEntry) -> bool:
        """Store entry unless the cached row carries a later last_updated.

        Two committed writers can publish in either order; the row version
        decides, not arrival order.
        """
        uuid = entry.account.uuid
        with self._lock:
            current = self._data.get(uuid)
            if current is not None and _written_before(entry.account, current.account):
                return False
            self._store(uuid, entry)
            return True
