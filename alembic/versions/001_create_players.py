"""001: create players table

Revision ID: 001
Revises: 
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE players (
            uuid            VARCHAR(36)    PRIMARY KEY,
            username        VARCHAR(16)    NOT NULL,
            balance         NUMERIC(20, 2) NOT NULL DEFAULT 0,
            bank_balance    NUMERIC(20, 2) NOT NULL DEFAULT 0,
            total_earned    NUMERIC(20, 2) NOT NULL DEFAULT 0,
            total_spent     NUMERIC(20, 2) NOT NULL DEFAULT 0,
            created_at      TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            last_seen       TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            last_updated    TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_players_balance_gte_0       CHECK (balance >= 0),
            CONSTRAINT ck_players_bank_balance_gte_0  CHECK (bank_balance >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_players_balance ON players (balance DESC);")
    op.execute("CREATE INDEX idx_players_bank_balance ON players (bank_balance);")
    op.execute("COMMENT ON TABLE players IS 'Player accounts. Amounts are NUMERIC(20,2), rounded half-up';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS players CASCADE;")
