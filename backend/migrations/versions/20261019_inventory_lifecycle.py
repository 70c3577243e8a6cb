"""Inventory lifecycle schema: orders, inventory records, ledger, audit, notifications

Revision ID: 20261019_inventory_lifecycle
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_inventory_lifecycle"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_role", ["role"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("client_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="in_progress"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_client_id", ["client_id"], unique=False)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)

    op.create_table(
        "order_products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_order_number", sa.String(64), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("product_status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("tracking_number", sa.String(128), nullable=True),
        sa.Column("shipping_carrier", sa.String(64), nullable=True),
        sa.Column("inventory_status", sa.String(32), nullable=True),
        sa.Column("inventory_id", sa.Integer(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_products", schema=None) as batch_op:
        batch_op.create_index("ix_order_products_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_order_products_product_status", ["product_status"], unique=False)
        batch_op.create_index("ix_order_products_inventory_id", ["inventory_id"], unique=False)
        batch_op.create_index("ix_order_products_order_status", ["order_id", "product_status"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_product_id", sa.Integer(), nullable=False),
        sa.Column("variant_combo", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["order_product_id"], ["order_products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index("ix_order_items_order_product_id", ["order_product_id"], unique=False)

    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_product_id", sa.Integer(), nullable=True),
        sa.Column("order_id", sa.Integer(), nullable=True),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("product_order_number", sa.String(64), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=True),
        sa.Column("client_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="incoming"),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by", sa.Integer(), nullable=True),
        sa.Column("rack_location", sa.String(128), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_by", sa.Integer(), nullable=True),
        sa.Column("picked_up_by", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("split_from_id", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("status IN ('incoming', 'in_stock', 'archived')", name="ck_inventory_status"),
        sa.ForeignKeyConstraint(["order_product_id"], ["order_products.id"]),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["split_from_id"], ["inventory.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_order_product_id", ["order_product_id"], unique=False)
        batch_op.create_index("ix_inventory_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_inventory_client_id", ["client_id"], unique=False)
        batch_op.create_index("ix_inventory_status", ["status"], unique=False)
        batch_op.create_index("ix_inventory_split_from_id", ["split_from_id"], unique=False)
        batch_op.create_index("ix_inventory_status_created", ["status", "created_at"], unique=False)

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("order_item_id", sa.Integer(), nullable=True),
        sa.Column("variant_combo", sa.String(255), nullable=False, server_default="Default"),
        sa.Column("expected_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("expected_quantity >= 0", name="ck_inventory_items_qty_nonneg"),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventory.id"]),
        sa.ForeignKeyConstraint(["order_item_id"], ["order_items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_items", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_items_inventory_id", ["inventory_id"], unique=False)
        batch_op.create_index("ix_inventory_items_order_item_id", ["order_item_id"], unique=False)

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_item_id", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(16), nullable=False),
        sa.Column("quantity_change", sa.Integer(), nullable=False),
        sa.Column("quantity_before", sa.Integer(), nullable=False),
        sa.Column("quantity_after", sa.Integer(), nullable=False),
        sa.Column("picked_up_by", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_by_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("quantity_after = quantity_before + quantity_change", name="ck_invtx_quantity_arithmetic"),
        sa.CheckConstraint("quantity_after >= 0", name="ck_invtx_quantity_after_nonneg"),
        sa.CheckConstraint(
            "transaction_type IN ('pickup', 'restock', 'adjustment', 'manual')",
            name="ck_invtx_type",
        ),
        sa.ForeignKeyConstraint(["inventory_item_id"], ["inventory_items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_transactions_inventory_item_id", ["inventory_item_id"], unique=False)
        batch_op.create_index("ix_inventory_transactions_transaction_type", ["transaction_type"], unique=False)
        batch_op.create_index("ix_invtx_item_created", ["inventory_item_id", "created_at"], unique=False)

    op.create_table(
        "inventory_media",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("file_url", sa.String(1024), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=True),
        sa.Column("file_type", sa.String(16), nullable=False, server_default="other"),
        sa.Column("uploaded_by", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["inventory_id"], ["inventory.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_media", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_media_inventory_id", ["inventory_id"], unique=False)

    op.create_table(
        "inventory_audit_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=True),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("actor_name", sa.String(255), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_audit_events", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_audit_events_action", ["action"], unique=False)
        batch_op.create_index("ix_inventory_audit_events_inventory_id", ["inventory_id"], unique=False)
        batch_op.create_index("ix_inventory_audit_events_occurred_at", ["occurred_at"], unique=False)
        batch_op.create_index("ix_inv_audit_inventory_occurred", ["inventory_id", "occurred_at"], unique=False)

    op.create_table(
        "arrival_notifications",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inventory_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("order_number", sa.String(64), nullable=True),
        sa.Column("client_name", sa.String(255), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by_name", sa.String(255), nullable=True),
        sa.Column("rack_location", sa.String(128), nullable=True),
        sa.Column("total_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("dismissed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("dismissed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("arrival_notifications", schema=None) as batch_op:
        batch_op.create_index("ix_arrival_notifications_inventory_id", ["inventory_id"], unique=False)
        batch_op.create_index("ix_arrival_user_dismissed", ["user_id", "dismissed"], unique=False)


def downgrade():
    op.drop_table("arrival_notifications")
    op.drop_table("inventory_audit_events")
    op.drop_table("inventory_media")
    op.drop_table("inventory_transactions")
    op.drop_table("inventory_items")
    op.drop_table("inventory")
    op.drop_table("order_items")
    op.drop_table("order_products")
    op.drop_table("orders")
    op.drop_table("users")
