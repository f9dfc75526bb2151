"""Initial schema: products, transactions, transaction items, inventory items

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "products",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("product_code", sa.String(length=128), nullable=True),
        sa.Column("internal_barcode", sa.String(length=128), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("cost_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("selling_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("default_unit_price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("supplier", sa.String(length=255), nullable=True),
        sa.Column("current_stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_products_name", "products", ["name"])
    op.create_index("ix_products_product_code", "products", ["product_code"])
    op.create_index("ix_products_internal_barcode", "products", ["internal_barcode"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("type", sa.String(length=8), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("tracking_number", sa.String(length=255), nullable=True),
        sa.Column("order_code", sa.String(length=255), nullable=True),
        sa.Column("shipping_code", sa.String(length=255), nullable=True),
        sa.Column("purchase_order_code", sa.String(length=255), nullable=True),
        sa.Column("order_id", sa.String(length=255), nullable=True),
        sa.Column("order_date", sa.String(length=32), nullable=True),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("partner_name", sa.String(length=255), nullable=True),
        sa.Column("total_amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transactions_type", "transactions", ["type"])
    op.create_index("ix_transactions_status", "transactions", ["status"])
    op.create_index("ix_transactions_date", "transactions", ["date"])
    op.create_index("ix_transactions_status_date", "transactions", ["status", "date"])
    op.create_index("ix_transactions_tracking_number", "transactions", ["tracking_number"])
    op.create_index("ix_transactions_order_id", "transactions", ["order_id"])

    op.create_table(
        "transaction_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.String(length=36),
            sa.ForeignKey("transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("line_no", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_transaction_items_transaction_id", "transaction_items", ["transaction_id"])
    op.create_index("ix_transaction_items_product_id", "transaction_items", ["product_id"])

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("product_id", sa.String(length=36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("tracking_number", sa.String(length=255), nullable=False),
        sa.Column("order_code", sa.String(length=255), nullable=True),
        sa.Column("shipping_code", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column(
            "in_transaction_id",
            sa.String(length=36),
            sa.ForeignKey("transactions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "out_transaction_id",
            sa.String(length=36),
            sa.ForeignKey("transactions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("in_date", sa.Date(), nullable=False),
        sa.Column("out_date", sa.Date(), nullable=True),
        sa.Column("partner_name", sa.String(length=255), nullable=True),
        sa.Column("memo", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_inventory_items_product_id", "inventory_items", ["product_id"])
    op.create_index("ix_inventory_items_status", "inventory_items", ["status"])
    op.create_index("ix_inventory_items_product_status", "inventory_items", ["product_id", "status"])
    op.create_index("ix_inventory_items_tracking_number", "inventory_items", ["tracking_number"])
    op.create_index("ix_inventory_items_in_transaction_id", "inventory_items", ["in_transaction_id"])
    op.create_index("ix_inventory_items_out_transaction_id", "inventory_items", ["out_transaction_id"])


def downgrade():
    op.drop_table("inventory_items")
    op.drop_table("transaction_items")
    op.drop_table("transactions")
    op.drop_table("products")
