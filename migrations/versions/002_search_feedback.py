"""Search feedback: per-user corrections to searchExpenses results.

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
        CREATE TABLE search_feedback (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         TEXT NOT NULL,
            query           TEXT NOT NULL,
            expense_id      TEXT NOT NULL,
            feedback_type   TEXT NOT NULL
                            CHECK (feedback_type IN ('correct', 'incorrect')),
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            UNIQUE (user_id, query, expense_id)
        )
    """)
    op.execute("CREATE INDEX idx_search_feedback_user_query ON search_feedback (user_id, query)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS search_feedback")
