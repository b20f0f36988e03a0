"""Scheduled jobs invoked by the host scheduler (see src/main.py).

The engines never schedule themselves. Each job here isolates its own
failures so one broken run cannot take the scheduler loop down.
"""

import logging

from src.eco_auction.application.service import AuctionEngine, SettlementSummary
from src.eco_bank.application.service import BankService, InterestSummary
from src.eco_common.datetime_utils import Clock, utc_now
from src.eco_transfer.domain.limits import TransferTracker

logger = logging.getLogger(__name__)


class ScheduledJobs:
    def __init__(
        self,
        auctions: AuctionEngine,
        bank: BankService,
        tracker: TransferTracker,
        clock: Clock = utc_now,
    ) -> None:
        self._auctions = auctions
        self._bank = bank
        self._tracker = tracker
        self._clock = clock

    async def run_auction_sweep(self) -> SettlementSummary | None:
        try:
            return await self._auctions.process_ended_auctions()
        except Exception:
            logger.exception("Auction sweep crashed")
            return None

    async def run_interest(self) -> InterestSummary | None:
        try:
            return await self._bank.calculate_and_apply_interest()
        except Exception:
            logger.exception("Interest run crashed")
            return None

    def reset_rate_limits(self) -> int:
        """Forget expired cooldowns and per-minute windows. Returns senders dropped."""
        try:
            removed = self._tracker.reset_expired(self._clock())
        except Exception:
            logger.exception("Rate limit reset crashed")
            return 0
        if removed:
            logger.debug(
                "Rate limit reset dropped %d idle senders, %d still tracked",
                removed, self._tracker.tracked_senders(),
            )
        return removed

    def reset_daily_limits(self) -> None:
        try:
            self._tracker.reset_daily()
        except Exception:
            logger.exception("Daily transfer total reset crashed")

    def reset_weekly_limits(self) -> None:
        try:
            self._tracker.reset_weekly()
        except Exception:
            logger.exception("Weekly transfer total reset crashed")
