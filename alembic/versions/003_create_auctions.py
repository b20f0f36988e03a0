"""003: create auctions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE auctions (
            id                   BIGSERIAL      PRIMARY KEY,
            seller_uuid          VARCHAR(36)    NOT NULL REFERENCES players(uuid),
            item_name            VARCHAR(255)   NOT NULL,
            item_data            TEXT           NOT NULL,
            starting_bid         NUMERIC(20, 2) NOT NULL,
            buyout_price         NUMERIC(20, 2),
            current_bid          NUMERIC(20, 2) NOT NULL DEFAULT 0,
            highest_bidder_uuid  VARCHAR(36)    REFERENCES players(uuid),
            duration_seconds     INTEGER        NOT NULL,
            start_time           TIMESTAMPTZ    NOT NULL,
            end_time             TIMESTAMPTZ    NOT NULL,
            status               VARCHAR(20)    NOT NULL DEFAULT 'ACTIVE',
            category             VARCHAR(50)    NOT NULL DEFAULT 'misc',
            created_at           TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_auctions_starting_bid_gt_0 CHECK (starting_bid > 0),
            CONSTRAINT ck_auctions_buyout CHECK (buyout_price IS NULL OR buyout_price >= starting_bid),
            CONSTRAINT ck_auctions_current_bid_gte_0 CHECK (current_bid >= 0),
            CONSTRAINT ck_auctions_duration_gt_0 CHECK (duration_seconds > 0),
            CONSTRAINT ck_auctions_end_after_start CHECK (end_time > start_time),
            CONSTRAINT ck_auctions_status CHECK (status IN ('ACTIVE', 'ENDED', 'CANCELLED'))
        );
    """)
    op.execute("CREATE INDEX idx_auctions_status_end ON auctions (status, end_time);")
    op.execute("CREATE INDEX idx_auctions_seller ON auctions (seller_uuid, created_at DESC);")
    op.execute("CREATE INDEX idx_auctions_category ON auctions (category) WHERE status = 'ACTIVE';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS auctions CASCADE;")
