"""Record the template slot a generated shift comes from.

Revision ID: 20260112_0002
Revises: 20260105_0001
Create Date: 2026-01-12 10:15:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20260112_0002"
down_revision = "20260105_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column("shift", sa.Column("template_slot", sa.String(length=40), nullable=True))
    op.create_index("ix_shift_template_slot", "shift", ["template_slot"])


def downgrade() -> None:
    op.drop_index("ix_shift_template_slot", table_name="shift")
    op.drop_column("shift", "template_slot")
