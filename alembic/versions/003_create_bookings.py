"""003: create bookings table

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
        CREATE TABLE bookings (
            id              VARCHAR(64)     PRIMARY KEY,
            skill_id        VARCHAR(64)     NOT NULL REFERENCES skills (id),
            requester_id    VARCHAR(64)     NOT NULL,
            provider_id     VARCHAR(64)     NOT NULL,
            credits         INTEGER         NOT NULL,
            date            DATE            NOT NULL,
            time            VARCHAR(20)     NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'pending',
            reviewed        BOOLEAN         NOT NULL DEFAULT FALSE,
            meeting_ref     VARCHAR(500),
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            confirmed_at    TIMESTAMPTZ,
            completed_at    TIMESTAMPTZ,
            cancelled_at    TIMESTAMPTZ,
            version         BIGINT          NOT NULL DEFAULT 1,
            CONSTRAINT ck_bookings_credits_gt_0 CHECK (credits > 0),
            CONSTRAINT ck_bookings_status CHECK (
                status IN ('pending', 'confirmed', 'completed', 'declined', 'cancelled')
            )
        );
    """)
    op.execute("CREATE INDEX idx_bookings_requester ON bookings (requester_id, created_at DESC);")
    op.execute("CREATE INDEX idx_bookings_provider ON bookings (provider_id, created_at DESC);")
    op.execute("CREATE INDEX idx_bookings_skill ON bookings (skill_id);")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS bookings CASCADE;")
