"""001: create user_balances table

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
        CREATE TABLE user_balances (
            user_id         VARCHAR(64)     PRIMARY KEY,
            credits         INTEGER         NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            version         BIGINT          NOT NULL DEFAULT 1,
            CONSTRAINT ck_user_balances_credits_gte_0 CHECK (credits >= 0)
        );
    """)
    op.execute("COMMENT ON TABLE user_balances IS 'Credit balances — mutated only by the transfer engine';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_balances CASCADE;")
