"""add coupon_code to orders

Revision ID: d4f7b0c3e5a6
Revises: c3e6a9b2d4f5
Create Date: 2026-10-20 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "d4f7b0c3e5a6"
down_revision = "c3e6a9b2d4f5"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "orders",
        sa.Column("coupon_code", sa.String(length=64), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("orders", "coupon_code")
