"""Create marketplace settlement schema

Revision ID: 20261016_settlement
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_settlement"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "designer_profiles",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("designer_profiles", schema=None) as batch_op:
        batch_op.create_index("ix_designer_profiles_user_id", ["user_id"], unique=True)

    op.create_table(
        "shop_profiles",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("shop_name", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("shop_profiles", schema=None) as batch_op:
        batch_op.create_index("ix_shop_profiles_user_id", ["user_id"], unique=True)

    op.create_table(
        "products",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "customization_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("legacy_id", sa.String(128), nullable=True),
        sa.Column("customer_id", sa.String(64), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("designer_id", sa.String(64), nullable=True),
        sa.Column("printing_shop_id", sa.String(64), nullable=True),
        sa.Column("product_id", sa.String(64), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("customization_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending_designer_review"),
        sa.Column("revision_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("rejection_reason", sa.String(500), nullable=True),
        sa.Column("designer_notes", sa.Text(), nullable=True),
        sa.Column("designer_final_file_url", sa.String(1024), nullable=True),
        sa.Column("designer_preview_image_url", sa.String(1024), nullable=True),
        sa.Column("design_fee_cents", sa.Integer(), nullable=True),
        sa.Column("product_cost_cents", sa.Integer(), nullable=True),
        sa.Column("printing_cost_cents", sa.Integer(), nullable=True),
        sa.Column("total_cost_cents", sa.Integer(), nullable=True),
        sa.Column("pricing_agreed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_status", sa.String(16), nullable=True),
        sa.Column("paid_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("escrow_status", sa.String(16), nullable=True),
        sa.Column("designer_payout_cents", sa.Integer(), nullable=True),
        sa.Column("designer_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("designer_payout_id", sa.String(128), nullable=True),
        sa.Column("shop_payout_cents", sa.Integer(), nullable=True),
        sa.Column("shop_paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shop_payout_id", sa.String(128), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("legacy_id", name="uq_customization_requests_legacy_id"),
        sa.CheckConstraint(
            "total_cost_cents IS NULL OR "
            "total_cost_cents = design_fee_cents + product_cost_cents + printing_cost_cents",
            name="ck_customization_total_cost",
        ),
        sa.CheckConstraint(
            "design_fee_cents IS NULL OR "
            "(design_fee_cents >= 0 AND product_cost_cents >= 0 AND printing_cost_cents >= 0)",
            name="ck_customization_pricing_non_negative",
        ),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customization_requests", schema=None) as batch_op:
        batch_op.create_index("ix_customization_requests_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_customization_requests_printing_shop_id", ["printing_shop_id"], unique=False)
        batch_op.create_index("ix_customization_requests_status", ["status"], unique=False)
        batch_op.create_index("ix_customizations_designer_status", ["designer_id", "status"], unique=False)

    op.create_table(
        "customization_payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("invoice_url", sa.String(1024), nullable=True),
        sa.Column("external_id", sa.String(128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["request_id"], ["customization_requests.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customization_payments", schema=None) as batch_op:
        batch_op.create_index("ix_customization_payments_request_id", ["request_id"], unique=False)
        batch_op.create_index("ix_customization_payments_external_id", ["external_id"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("business_owner_id", sa.String(64), nullable=False),
        sa.Column("customer_id", sa.String(64), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("total_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_business_owner_id", ["business_owner_id"], unique=False)
        batch_op.create_index("ix_orders_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_orders_owner_created", ["business_owner_id", "created_at"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False, server_default="product"),
        sa.Column("product_id", sa.String(64), nullable=True),
        sa.Column("design_id", sa.String(64), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("design_name", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_items", schema=None) as batch_op:
        batch_op.create_index("ix_order_items_order_id", ["order_id"], unique=False)

    op.create_table(
        "designer_earnings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("designer_id", sa.String(64), nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", name="uq_designer_earnings_order"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("designer_earnings", schema=None) as batch_op:
        batch_op.create_index("ix_designer_earnings_designer_id", ["designer_id"], unique=False)


def downgrade():
    op.drop_table("designer_earnings")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("customization_payments")
    op.drop_table("customization_requests")
    op.drop_table("products")
    op.drop_table("shop_profiles")
    op.drop_table("designer_profiles")
