"""002: create transactions table (append-only ledger)

Revision ID: 002
Revises: 001
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id              BIGSERIAL      PRIMARY KEY,
            from_uuid       VARCHAR(36)    REFERENCES players(uuid),
            to_uuid         VARCHAR(36)    REFERENCES players(uuid),
            amount          NUMERIC(20, 2) NOT NULL,
            type            VARCHAR(50)    NOT NULL,
            description     TEXT,
            "timestamp"     TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_amount_gte_0 CHECK (amount >= 0),
            CONSTRAINT ck_transactions_type CHECK (type IN (
                'deposit', 'withdrawal', 'balance_set', 'transfer',
                'interest', 'bank_deposit', 'bank_withdrawal',
                'auction_bid', 'auction_refund', 'auction_sale'
            ))
        );
    """)
    op.execute("CREATE INDEX idx_transactions_from ON transactions (from_uuid, id DESC);")
    op.execute("CREATE INDEX idx_transactions_to ON transactions (to_uuid, id DESC);")
    op.execute("COMMENT ON TABLE transactions IS 'Append-only ledger: rows are never updated or deleted';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
