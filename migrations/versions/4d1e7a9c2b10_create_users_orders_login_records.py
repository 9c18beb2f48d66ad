"""create users, orders and login_records tables

Revision ID: 4d1e7a9c2b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4d1e7a9c2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users, orders and login_records tables."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("first_name", sa.String(50), nullable=False),
            sa.Column("last_name", sa.String(50), nullable=False),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("mobile_number", sa.String(32), nullable=False),
            sa.Column("address", sa.Text(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_users_mobile_number", "users", ["mobile_number"])

    if "orders" not in existing_tables:
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_number", sa.String(64), nullable=False, unique=True),
            sa.Column("buyer_name", sa.String(255), nullable=False),
            sa.Column("status", sa.String(32), nullable=False, server_default="PENDING"),
            sa.Column("order_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_orders_status", "orders", ["status"])
        op.create_index("idx_orders_buyer_name", "orders", ["buyer_name"])
        op.create_index("idx_orders_order_date", "orders", ["order_date"])

    if "login_records" not in existing_tables:
        op.create_table(
            "login_records",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
            sa.Column("activity_type", sa.String(16), nullable=False),
            sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("ip_address", sa.String(64), nullable=True),
            sa.Column("user_agent", sa.String(512), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_login_records_user_id", "login_records", ["user_id"])
        op.create_index("idx_login_records_timestamp", "login_records", ["timestamp"])


def downgrade() -> None:
    op.drop_index("idx_login_records_timestamp", table_name="login_records")
    op.drop_index("idx_login_records_user_id", table_name="login_records")
    op.drop_table("login_records")
    op.drop_index("idx_orders_order_date", table_name="orders")
    op.drop_index("idx_orders_buyer_name", table_name="orders")
    op.drop_index("idx_orders_status", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_users_mobile_number", table_name="users")
    op.drop_table("users")
