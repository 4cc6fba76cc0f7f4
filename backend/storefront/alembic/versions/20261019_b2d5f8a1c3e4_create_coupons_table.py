"""create coupons table

Revision ID: b2d5f8a1c3e4
Revises: a1c4e7f0b2d3
Create Date: 2026-10-19 00:00:01.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "b2d5f8a1c3e4"
down_revision = "a1c4e7f0b2d3"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "coupons",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("discount_percentage", sa.Integer(), nullable=False),
        sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("(CURRENT_TIMESTAMP)"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", "user_id", name="uq_coupons_code_user"),
    )
    op.create_index("ix_coupons_user_id", "coupons", ["user_id"])
    op.create_index("ix_coupons_code", "coupons", ["code"])


def downgrade() -> None:
    op.drop_index("ix_coupons_code", table_name="coupons")
    op.drop_index("ix_coupons_user_id", table_name="coupons")
    op.drop_table("coupons")
