"""Economy worker entry point: runs the scheduled jobs on fixed periods.

Run with: python -m src.main

The command/GUI layer of the host embeds the engines directly through
build_engines(); this process only drives the periodic jobs (auction sweep,
interest, rate-limit window reset, daily/weekly total reset).

Payouts, refunds and interest written here never reach the host process's
account cache directly. The host sees them once its cached entry is older
than CACHE_TTL_SECONDS and get_balance re-reads the row.
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.settings import Settings, settings
from src.eco_account.application.service import BalanceEngine
from src.eco_auction.application.service import AuctionEngine
from src.eco_bank.application.service import BankService
from src.eco_common.database import async_session_factory, engine
from src.eco_scheduler.jobs import ScheduledJobs
from src.eco_transfer.application.service import TransferEngine

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 60 * 60
WEEK_SECONDS = 7 * DAY_SECONDS


@dataclass
class Engines:
    balances: BalanceEngine
    transfers: TransferEngine
    auctions: AuctionEngine
    bank: BankService
    jobs: ScheduledJobs


def build_engines(
    session_factory: async_sessionmaker[AsyncSession], config: Settings
) -> Engines:
    """Wire every engine to one session factory and one settings snapshot."""
    balances = BalanceEngine(session_factory, config)
    transfers = TransferEngine(session_factory, config, balances)
    auctions = AuctionEngine(session_factory, config, balances)
    bank = BankService(session_factory, config, balances)
    jobs = ScheduledJobs(auctions, bank, transfers.tracker)
    return Engines(balances, transfers, auctions, bank, jobs)


async def run_periodically(
    name: str, period_seconds: float, job: Callable[[], Awaitable[object] | object]
) -> None:
    """Call job every period_seconds until cancelled. The first run waits one period."""
    while True:
        await asyncio.sleep(period_seconds)
        try:
            result = job()
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("Scheduled job %s failed", name)


async def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Startup: verify the database before scheduling anything
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("%s worker started", settings.APP_NAME)

    engines = build_engines(async_session_factory, settings)
    jobs = engines.jobs
    tasks = [
        asyncio.create_task(
            run_periodically(
                "auction_sweep", settings.AUCTION_SWEEP_INTERVAL_SECONDS, jobs.run_auction_sweep
            )
        ),
        asyncio.create_task(
            run_periodically(
                "interest", settings.INTEREST_INTERVAL_HOURS * 3600, jobs.run_interest
            )
        ),
        asyncio.create_task(
            run_periodically(
                "rate_limit_reset",
                settings.RATE_LIMIT_RESET_INTERVAL_SECONDS,
                jobs.reset_rate_limits,
            )
        ),
        asyncio.create_task(
            run_periodically("daily_reset", DAY_SECONDS, jobs.reset_daily_limits)
        ),
        asyncio.create_task(
            run_periodically("weekly_reset", WEEK_SECONDS, jobs.reset_weekly_limits)
        ),
    ]
    try:
        await asyncio.gather(*tasks)
    finally:
        # Shutdown
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await engine.dispose()
        logger.info("%s worker stopped", settings.APP_NAME)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
