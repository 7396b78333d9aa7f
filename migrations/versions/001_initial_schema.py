"""Initial schema: expenses, incomes, settings, cycles, budgets and scenarios.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. expenses ──
    op.execute("""
        CREATE TABLE expenses (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         TEXT NOT NULL,
            amount          NUMERIC(12,2) NOT NULL CHECK (amount > 0),
            note            TEXT NOT NULL DEFAULT '',
            category        TEXT NOT NULL
                            CHECK (category IN ('supervivencia', 'opcional', 'cultura', 'extra')),
            date            DATE NOT NULL DEFAULT CURRENT_DATE,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_expenses_user_date ON expenses (user_id, date)")
    op.execute("CREATE INDEX idx_expenses_user_category ON expenses (user_id, category)")

    # ── 2. incomes ──
    op.execute("""
        CREATE TABLE incomes (
            id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         TEXT NOT NULL,
            amount          NUMERIC(12,2) NOT NULL CHECK (amount > 0),
            note            TEXT NOT NULL DEFAULT '',
            category        TEXT NOT NULL DEFAULT 'extra',
            date            DATE NOT NULL DEFAULT CURRENT_DATE,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_incomes_user_date ON incomes (user_id, date)")

    # ── 3. user_settings (default budgets and monthly plan) ──
    op.execute("""
        CREATE TABLE user_settings (
            user_id                 TEXT PRIMARY KEY,
            budget_supervivencia    NUMERIC(12,2) NOT NULL DEFAULT 0,
            budget_opcional         NUMERIC(12,2) NOT NULL DEFAULT 0,
            budget_cultura          NUMERIC(12,2) NOT NULL DEFAULT 0,
            budget_extra            NUMERIC(12,2) NOT NULL DEFAULT 0,
            monthly_income          NUMERIC(12,2),
            fixed_expenses          NUMERIC(12,2) DEFAULT 0,
            saving_goal             NUMERIC(12,2) DEFAULT 0,
            updated_at              TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 4. payment_cycles ──
    op.execute("""
        CREATE TABLE payment_cycles (
            user_id         TEXT PRIMARY KEY,
            cycle_type      TEXT NOT NULL DEFAULT 'calendar'
                            CHECK (cycle_type IN ('calendar', 'payroll')),
            payroll_day     INTEGER CHECK (payroll_day BETWEEN 1 AND 31),
            updated_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 5. cycle_budgets (per-cycle overrides of user_settings) ──
    op.execute("""
        CREATE TABLE cycle_budgets (
            id                      UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id                 TEXT NOT NULL,
            cycle_start             DATE NOT NULL,
            cycle_end               DATE NOT NULL,
            budget_supervivencia    NUMERIC(12,2) NOT NULL DEFAULT 0,
            budget_opcional         NUMERIC(12,2) NOT NULL DEFAULT 0,
            budget_cultura          NUMERIC(12,2) NOT NULL DEFAULT 0,
            budget_extra            NUMERIC(12,2) NOT NULL DEFAULT 0,
            created_at              TIMESTAMPTZ DEFAULT NOW(),
            UNIQUE (user_id, cycle_start),
            CHECK (cycle_end >= cycle_start)
        )
    """)

    # ── 6. scenarios (what-if planning) ──
    op.execute("""
        CREATE TABLE scenarios (
            id                      UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id                 TEXT NOT NULL,
            name                    TEXT NOT NULL,
            description             TEXT DEFAULT '',
            estimated_cost          NUMERIC(12,2) NOT NULL CHECK (estimated_cost > 0),
            category                TEXT NOT NULL DEFAULT 'extra',
            target_date             DATE,
            monthly_savings_needed  NUMERIC(12,2),
            status                  TEXT NOT NULL DEFAULT 'planned',
            created_at              TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_scenarios_user ON scenarios (user_id)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS scenarios")
    op.execute("DROP TABLE IF EXISTS cycle_budgets")
    op.execute("DROP TABLE IF EXISTS payment_cycles")
    op.execute("DROP TABLE IF EXISTS user_settings")
    op.execute("DROP TABLE IF EXISTS incomes")
    op.execute("DROP TABLE IF EXISTS expenses")
