"""SQLAlchemy ORM models for eco_auction (mirror of Alembic migrations 003/004)."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.eco_common.database import Base


class AuctionORM(Base):
    __tablename__ = "auctions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    seller_uuid: Mapped[str] = mapped_column(
        String(36), ForeignKey("players.uuid"), nullable=False
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_data: Mapped[str] = mapped_column(Text, nullable=False)
    starting_bid: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    buyout_price: Mapped[Decimal | None] = mapped_column(Numeric(20, 2), nullable=True)
    current_bid: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=0)
    highest_bidder_uuid: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("players.uuid"), nullable=True
    )
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="misc")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class AuctionBidORM(Base):
    __tablename__ = "auction_bids"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    auction_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("auctions.id"), nullable=False
    )
    bidder_uuid: Mapped[str] = mapped_column(
        String(36), ForeignKey("players.uuid"), nullable=False
    )
    bid_amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
