"""SQLAlchemy ORM models for eco_ledger.

These map to existing tables created by Alembic migrations.
DO NOT add/remove columns here without a corresponding migration.
Column names are a persisted contract shared with backup/restore tooling.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from src.eco_common.database import Base


class PlayerORM(Base):
    __tablename__ = "players"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True)
    username: Mapped[str] = mapped_column(String(16), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=0)
    bank_balance: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=0)
    total_earned: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=0)
    total_spent: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_seen: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class TransactionORM(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    from_uuid: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("players.uuid"), nullable=True
    )
    to_uuid: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("players.uuid"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 2), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    # NOTE: No updated_at, transactions is append-only
