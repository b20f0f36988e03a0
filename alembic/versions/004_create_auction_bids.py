"""004: create auction_bids table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE auction_bids (
            id              BIGSERIAL      PRIMARY KEY,
            auction_id      BIGINT         NOT NULL REFERENCES auctions(id),
            bidder_uuid     VARCHAR(36)    NOT NULL REFERENCES players(uuid),
            bid_amount      NUMERIC(20, 2) NOT NULL,
            "timestamp"     TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_auction_bids_amount_gt_0 CHECK (bid_amount > 0)
        );
    """)
    # Bid cooldown lookup: latest bid per (auction, bidder)
    op.execute(
        'CREATE INDEX idx_auction_bids_cooldown ON auction_bids (auction_id, bidder_uuid, "timestamp" DESC);'
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS auction_bids CASCADE;")
