"""002: create skills table

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
        CREATE TABLE skills (
            id                  VARCHAR(64)     PRIMARY KEY,
            provider_id         VARCHAR(64)     NOT NULL,
            title               VARCHAR(200)    NOT NULL,
            category            VARCHAR(100),
            credits_per_hour    INTEGER         NOT NULL,
            available_slots     INTEGER         NOT NULL,
            rating              NUMERIC(2, 1)   NOT NULL DEFAULT 0,
            review_count        INTEGER         NOT NULL DEFAULT 0,
            total_sessions      INTEGER         NOT NULL DEFAULT 0,
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            version             BIGINT          NOT NULL DEFAULT 1,
            CONSTRAINT ck_skills_credits_per_hour CHECK (credits_per_hour > 0),
            CONSTRAINT ck_skills_slots_gte_0 CHECK (available_slots >= 0),
            CONSTRAINT ck_skills_rating_range CHECK (rating >= 0 AND rating <= 5),
            CONSTRAINT ck_skills_review_count_gte_0 CHECK (review_count >= 0),
            CONSTRAINT ck_skills_total_sessions_gte_0 CHECK (total_sessions >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_skills_provider ON skills (provider_id, created_at DESC);")
    op.execute("""
        CREATE INDEX idx_skills_active
        ON skills (created_at DESC)
        WHERE is_active = TRUE;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS skills CASCADE;")
