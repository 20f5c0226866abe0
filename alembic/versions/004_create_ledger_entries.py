"""004: create ledger_entries table

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
        CREATE TABLE ledger_entries (
            id              VARCHAR(64)     PRIMARY KEY,
            from_user       VARCHAR(64)     NOT NULL,
            to_user         VARCHAR(64)     NOT NULL,
            skill_id        VARCHAR(64)     NOT NULL,
            booking_id      VARCHAR(64)     NOT NULL,
            credits         INTEGER         NOT NULL,
            kind            VARCHAR(10)     NOT NULL,
            status          VARCHAR(20)     NOT NULL DEFAULT 'completed',
            description     VARCHAR(500)    NOT NULL DEFAULT '',
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            cancelled_at    TIMESTAMPTZ,
            version         BIGINT          NOT NULL DEFAULT 1,
            CONSTRAINT ck_ledger_credits_gt_0 CHECK (credits > 0),
            CONSTRAINT ck_ledger_kind CHECK (kind IN ('spent', 'earned')),
            CONSTRAINT ck_ledger_status CHECK (status IN ('completed', 'cancelled'))
        );
    """)
    op.execute("CREATE INDEX idx_ledger_booking ON ledger_entries (booking_id);")
    op.execute("CREATE INDEX idx_ledger_from_user ON ledger_entries (from_user, created_at DESC);")
    op.execute("CREATE INDEX idx_ledger_to_user ON ledger_entries (to_user, created_at DESC);")
    op.execute(
        "COMMENT ON TABLE ledger_entries IS "
        "'Credit movements in spent/earned pairs — append-only, only status flips to cancelled';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ledger_entries CASCADE;")
