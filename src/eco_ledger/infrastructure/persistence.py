"""Ledger Store — PostgreSQL implementations of the eco_ledger Protocols.

Serialization unit is the players row: every balance mutation first takes
`SELECT ... FOR UPDATE` via lock_account() and then writes absolute values
with update_balances(). Two sessions touching the same account therefore
queue on the row lock instead of losing each other's update.

last_updated = clock_timestamp() at the UPDATE, so a later lock holder always
stamps a later value. The account cache uses it as the row version.

Transaction ownership: The CALLER (an engine in eco_*/application) is
responsible for committing or rolling back the session.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.eco_common.errors import AccountNotFoundError, InternalError
from src.eco_ledger.domain.models import Account, TransactionRecord

# ---------------------------------------------------------------------------
# SQL: players
# ---------------------------------------------------------------------------

_ACCOUNT_COLUMNS = """
    uuid, username, balance, bank_balance, total_earned, total_spent,
    created_at, last_seen, last_updated
"""

_GET_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM players
    WHERE uuid = :uuid
""")

_LOCK_ACCOUNT_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM players
    WHERE uuid = :uuid
    FOR UPDATE
""")

_CREATE_ACCOUNT_SQL = text("""
    INSERT INTO players (uuid, username, balance, bank_balance)
    VALUES (:uuid, :username, :balance, 0)
    ON CONFLICT (uuid) DO NOTHING
""")

_TOUCH_ACCOUNT_SQL = text(f"""
    UPDATE players
    SET username  = COALESCE(CAST(:username AS VARCHAR), username),
        last_seen = NOW()
    WHERE uuid = :uuid
    RETURNING {_ACCOUNT_COLUMNS}
""")

_UPDATE_BALANCES_SQL = text(f"""
    UPDATE players
    SET balance      = :balance,
        bank_balance = :bank_balance,
        total_earned = total_earned + :earned,
        total_spent  = total_spent  + :spent,
        last_updated = clock_timestamp()
    WHERE uuid = :uuid
    RETURNING {_ACCOUNT_COLUMNS}
""")

_INTEREST_CANDIDATES_SQL = text("""
    SELECT uuid
    FROM players
    WHERE bank_balance >= :min_bank_balance
    ORDER BY uuid
""")

_TOP_BALANCES_SQL = text(f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM players
    ORDER BY balance DESC, uuid
    LIMIT :limit
""")

_TOTAL_MONEY_SQL = text("""
    SELECT COALESCE(SUM(balance), 0)      AS total_balance,
           COALESCE(SUM(bank_balance), 0) AS total_bank_balance
    FROM players
""")

# ---------------------------------------------------------------------------
# SQL: transactions (append-only)
# ---------------------------------------------------------------------------

_TRANSACTION_COLUMNS = """
    id, from_uuid, to_uuid, amount, type, description, "timestamp"
"""

_INSERT_TRANSACTION_SQL = text(f"""
    INSERT INTO transactions (from_uuid, to_uuid, amount, type, description)
    VALUES (:from_uuid, :to_uuid, :amount, :type, :description)
    RETURNING {_TRANSACTION_COLUMNS}
""")

_LIST_TRANSACTIONS_SQL = text(f"""
    SELECT {_TRANSACTION_COLUMNS}
    FROM transactions
    WHERE (from_uuid = :uuid OR to_uuid = :uuid)
      AND (CAST(:before_id AS BIGINT) IS NULL OR id < CAST(:before_id AS BIGINT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_account(row: object) -> Account:
    return Account(
        uuid=row.uuid,  # type: ignore[attr-defined]
        username=row.username,  # type: ignore[attr-defined]
        balance=row.balance,  # type: ignore[attr-defined]
        bank_balance=row.bank_balance,  # type: ignore[attr-defined]
        total_earned=row.total_earned,  # type: ignore[attr-defined]
        total_spent=row.total_spent,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        last_seen=row.last_seen,  # type: ignore[attr-defined]
        last_updated=row.last_updated,  # type: ignore[attr-defined]
    )


def _row_to_transaction(row: object) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,  # type: ignore[attr-defined]
        from_uuid=row.from_uuid,  # type: ignore[attr-defined]
        to_uuid=row.to_uuid,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        type=row.type,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        timestamp=row.timestamp,  # type: ignore[attr-defined]
    )


class AccountRepository:
    """Concrete repository for the players table."""

    async def get_account(self, db: AsyncSession, uuid: str) -> Account | None:
        result = await db.execute(_GET_ACCOUNT_SQL, {"uuid": uuid})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def create_account(
        self, db: AsyncSession, uuid: str, username: str, starting_balance: Decimal
    ) -> Account:
        # Concurrent first reads may race here; ON CONFLICT makes the loser a no-op.
        await db.execute(
            _CREATE_ACCOUNT_SQL,
            {"uuid": uuid, "username": username, "balance": starting_balance},
        )
        account = await self.get_account(db, uuid)
        if account is None:
            raise InternalError(f"Account insert for {uuid} returned no row")
        return account

    async def touch_account(
        self, db: AsyncSession, uuid: str, username: str | None
    ) -> Account | None:
        result = await db.execute(_TOUCH_ACCOUNT_SQL, {"uuid": uuid, "username": username})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def lock_account(self, db: AsyncSession, uuid: str) -> Account | None:
        result = await db.execute(_LOCK_ACCOUNT_SQL, {"uuid": uuid})
        row = result.fetchone()
        return _row_to_account(row) if row else None

    async def update_balances(
        self,
        db: AsyncSession,
        uuid: str,
        balance: Decimal,
        bank_balance: Decimal,
        earned: Decimal,
        spent: Decimal,
    ) -> Account:
        result = await db.execute(
            _UPDATE_BALANCES_SQL,
            {
                "uuid": uuid,
                "balance": balance,
                "bank_balance": bank_balance,
                "earned": earned,
                "spent": spent,
            },
        )
        row = result.fetchone()
        if row is None:
            raise AccountNotFoundError(uuid)
        return _row_to_account(row)

    async def list_interest_candidates(
        self, db: AsyncSession, min_bank_balance: Decimal
    ) -> list[str]:
        result = await db.execute(
            _INTEREST_CANDIDATES_SQL, {"min_bank_balance": min_bank_balance}
        )
        return [row.uuid for row in result.fetchall()]

    async def top_balances(self, db: AsyncSession, limit: int) -> list[Account]:
        result = await db.execute(_TOP_BALANCES_SQL, {"limit": limit})
        return [_row_to_account(row) for row in result.fetchall()]

    async def total_money(self, db: AsyncSession) -> tuple[Decimal, Decimal]:
        row = (await db.execute(_TOTAL_MONEY_SQL)).fetchone()
        if row is None:
            return Decimal("0.00"), Decimal("0.00")
        return row.total_balance, row.total_bank_balance


class TransactionLogRepository:
    """Append-only access to the transactions table."""

    async def append(
        self,
        db: AsyncSession,
        from_uuid: str | None,
        to_uuid: str | None,
        amount: Decimal,
        type: str,
        description: str | None,
    ) -> TransactionRecord:
        result = await db.execute(
            _INSERT_TRANSACTION_SQL,
            {
                "from_uuid": from_uuid,
                "to_uuid": to_uuid,
                "amount": amount,
                "type": type,
                "description": description,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_transaction(row)

    async def list_for_account(
        self,
        db: AsyncSession,
        uuid: str,
        limit: int,
        before_id: int | None,
    ) -> list[TransactionRecord]:
        result = await db.execute(
            _LIST_TRANSACTIONS_SQL,
            {"uuid": uuid, "limit": limit, "before_id": before_id},
        )
        return [_row_to_transaction(row) for row in result.fetchall()]
