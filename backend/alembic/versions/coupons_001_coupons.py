"""Coupons table

Revision ID: coupons_001
Revises:
Create Date: 2026-10-17
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision = "coupons_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "coupons",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("coupon_type", sa.String(20), nullable=False, server_default="none"),
        sa.Column("usage_limit", sa.Integer, nullable=False, server_default="0"),
        sa.Column("usage_left", sa.Integer, nullable=False, server_default="0"),
        sa.Column("percentage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("amount", sa.Integer, nullable=False, server_default="0"),
        sa.Column("expiration", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_coupons_code", "coupons", ["code"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_coupons_code", table_name="coupons")
    op.drop_table("coupons")
