"""Shared test fixtures: engines wired to the in-memory fake store."""

from decimal import Decimal

import pytest

from config.settings import Settings
from src.eco_account.application.service import BalanceEngine
from src.eco_auction.application.service import AuctionEngine
from src.eco_bank.application.service import BankService
from src.eco_scheduler.jobs import ScheduledJobs
from src.eco_transfer.application.service import TransferEngine
from tests.unit.fakes import (
    FakeAccountRepository,
    FakeAuctionRepository,
    FakeClock,
    FakeSessionFactory,
    FakeStore,
    FakeTransactionLogRepository,
)


class RecordingNotifier:
    """AuctionNotifier that remembers every call as (event, auction_id, *args)."""

    def __init__(self) -> None:
        self.events: list[tuple] = []

    async def outbid(self, listing, previous_bidder, refunded):
        self.events.append(("outbid", listing.id, previous_bidder, refunded))

    async def auction_won(self, listing, winner):
        self.events.append(("won", listing.id, winner))

    async def auction_sold(self, listing, payout, fee):
        self.events.append(("sold", listing.id, payout, fee))

    async def auction_unsold(self, listing):
        self.events.append(("unsold", listing.id))

    async def auction_cancelled(self, listing):
        self.events.append(("cancelled", listing.id))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        STARTING_BALANCE=Decimal("100.00"),
        MAX_BALANCE=Decimal("1000000000.00"),
        MIN_TRANSACTION=Decimal("0.01"),
        TRANSACTION_FEE=Decimal("0"),
        MINIMUM_BID_INCREASE=Decimal("1.00"),
        BID_COOLDOWN_SECONDS=5,
        FEE_PERCENTAGE=Decimal("5.0"),
        TRANSACTION_COOLDOWN_SECONDS=1,
        MAX_TRANSACTIONS_PER_MINUTE=10,
        INTEREST_RATE=Decimal("0.1"),
        MIN_BALANCE_FOR_INTEREST=Decimal("1000.00"),
        MAX_CACHED_PLAYERS=1000,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> FakeStore:
    return FakeStore(clock)


@pytest.fixture
def session_factory(store: FakeStore) -> FakeSessionFactory:
    return FakeSessionFactory(store)


@pytest.fixture
def balances(session_factory, settings, store, clock) -> BalanceEngine:
    return BalanceEngine(
        session_factory,
        settings,
        repo=FakeAccountRepository(store),
        log_repo=FakeTransactionLogRepository(store),
        clock=clock,
    )


@pytest.fixture
def transfers(session_factory, settings, balances, clock) -> TransferEngine:
    return TransferEngine(session_factory, settings, balances, clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def auctions(session_factory, settings, balances, store, notifier, clock) -> AuctionEngine:
    return AuctionEngine(
        session_factory,
        settings,
        balances,
        repo=FakeAuctionRepository(store),
        notifier=notifier,
        clock=clock,
    )


@pytest.fixture
def bank(session_factory, settings, balances, store) -> BankService:
    return BankService(
        session_factory, settings, balances, repo=FakeAccountRepository(store)
    )


@pytest.fixture
def jobs(auctions, bank, transfers, clock) -> ScheduledJobs:
    return ScheduledJobs(auctions, bank, transfers.tracker, clock=clock)
