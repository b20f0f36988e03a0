"""In-memory transfer cooldown and rate tracking.

Per-process and best-effort: nothing here is persisted, so a restart resets
every cooldown, per-minute window and daily/weekly total. All state sits
behind one threading.Lock; every method is safe to call concurrently.

Daily and weekly totals are accounted and exposed for reporting but no limit
is enforced on them.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from src.eco_common.errors import TransferCooldownError, TransferRateLimitError
from src.eco_common.money import ZERO

RATE_WINDOW = timedelta(minutes=1)


@dataclass
class _SenderState:
    last_transfer: datetime | None = None
    recent: deque[datetime] = field(default_factory=deque)  # within RATE_WINDOW
    daily_amount: Decimal = ZERO
    weekly_amount: Decimal = ZERO


class TransferTracker:
    def __init__(self, cooldown_seconds: int, max_per_minute: int) -> None:
        self._cooldown = timedelta(seconds=cooldown_seconds)
        self._max_per_minute = max_per_minute
        self._senders: dict[str, _SenderState] = {}
        self._lock = threading.Lock()

    def check(self, sender: str, now: datetime) -> None:
        """Raise TransferCooldownError(3001) or TransferRateLimitError(3002)."""
        with self._lock:
            state = self._senders.get(sender)
            if state is None:
                return
            if state.last_transfer is not None and now - state.last_transfer < self._cooldown:
                raise TransferCooldownError(sender)
            self._prune(state, now)
            if len(state.recent) >= self._max_per_minute:
                raise TransferRateLimitError(sender, self._max_per_minute)

    def record(self, sender: str, amount: Decimal, now: datetime) -> None:
        """Account a committed transfer."""
        with self._lock:
            state = self._senders.setdefault(sender, _SenderState())
            state.last_transfer = now
            state.recent.append(now)
            state.daily_amount += amount
            state.weekly_amount += amount

    def reset_expired(self, now: datetime) -> int:
        """Drop per-minute windows and cooldowns that have run out.

        Senders left with nothing to remember are removed. Returns how many.
        """
        removed = 0
        with self._lock:
            for sender in list(self._senders):
                state = self._senders[sender]
                self._prune(state, now)
                if state.last_transfer is not None and now - state.last_transfer >= self._cooldown:
                    state.last_transfer = None
                if (
                    state.last_transfer is None
                    and not state.recent
                    and state.daily_amount == ZERO
                    and state.weekly_amount == ZERO
                ):
                    del self._senders[sender]
                    removed += 1
        return removed

    def reset_daily(self) -> None:
        with self._lock:
            for state in self._senders.values():
                state.daily_amount = ZERO

    def reset_weekly(self) -> None:
        with self._lock:
            for state in self._senders.values():
                state.weekly_amount = ZERO

    def daily_amount(self, sender: str) -> Decimal:
        with self._lock:
            state = self._senders.get(sender)
            return state.daily_amount if state else ZERO

    def weekly_amount(self, sender: str) -> Decimal:
        with self._lock:
            state = self._senders.get(sender)
            return state.weekly_amount if state else ZERO

    def tracked_senders(self) -> int:
        with self._lock:
            return len(self._senders)

    def _prune(self, state: _SenderState, now: datetime) -> None:
        while state.recent and now - state.recent[0] >= RATE_WINDOW:
            state.recent.popleft()
