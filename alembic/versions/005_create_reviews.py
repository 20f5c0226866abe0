"""005: create reviews table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE reviews (
            id              VARCHAR(64)     PRIMARY KEY,
            booking_id      VARCHAR(64)     NOT NULL REFERENCES bookings (id),
            skill_id        VARCHAR(64)     NOT NULL REFERENCES skills (id),
            reviewer_id     VARCHAR(64)     NOT NULL,
            provider_id     VARCHAR(64)     NOT NULL,
            rating          SMALLINT        NOT NULL,
            comment         TEXT,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            version         BIGINT          NOT NULL DEFAULT 1,
            CONSTRAINT uq_reviews_booking UNIQUE (booking_id),
            CONSTRAINT ck_reviews_rating_range CHECK (rating BETWEEN 1 AND 5)
        );
    """)
    op.execute("CREATE INDEX idx_reviews_skill ON reviews (skill_id, created_at DESC);")
    op.execute("CREATE INDEX idx_reviews_provider ON reviews (provider_id, created_at DESC);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS reviews CASCADE;")
