"""Initial stock ledger schema

Revision ID: sl001_initial_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "sl001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_locations_type", "locations", ["type"], unique=False)
    op.create_index("ix_locations_type_active", "locations", ["type", "active"], unique=False)

    op.create_table(
        "products",
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("product_type", sa.String(length=16), nullable=False),
        sa.Column("manufacturer_ref", sa.String(length=128), nullable=True),
        sa.Column("cost_cents", sa.Integer(), nullable=True),
        sa.Column("rrp_cents", sa.Integer(), nullable=True),
        sa.Column("b2b_price_cents", sa.Integer(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("sku"),
    )
    op.create_index("ix_products_name", "products", ["name"], unique=False)
    op.create_index("ix_products_active", "products", ["active"], unique=False)

    op.create_table(
        "product_counters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=8), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "document_series",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("scope", sa.String(length=32), nullable=False),
        sa.Column("prefix", sa.String(length=32), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("next_number", sa.Integer(), nullable=False),
        sa.Column("padding", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_document_series_scope_active", "document_series", ["scope", "active"], unique=False)

    op.create_table(
        "stock_moves",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("channel", sa.String(length=16), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("from_id", sa.Integer(), nullable=True),
        sa.Column("to_id", sa.Integer(), nullable=True),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("related_move_id", sa.Integer(), nullable=True),
        sa.Column("reference", sa.String(length=64), nullable=True),
        sa.Column("series_code", sa.String(length=32), nullable=True),
        sa.Column("series_year", sa.Integer(), nullable=True),
        sa.Column("series_number", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("payment_status", sa.String(length=16), nullable=True),
        sa.Column("paid_amount_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["from_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["to_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["related_move_id"], ["stock_moves.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_moves_type", "stock_moves", ["type"], unique=False)
    op.create_index("ix_stock_moves_type_date", "stock_moves", ["type", "date"], unique=False)
    op.create_index("ix_stock_moves_from_id", "stock_moves", ["from_id"], unique=False)
    op.create_index("ix_stock_moves_to_id", "stock_moves", ["to_id"], unique=False)
    op.create_index("ix_stock_moves_customer_id", "stock_moves", ["customer_id"], unique=False)
    op.create_index("ix_stock_moves_related_move_id", "stock_moves", ["related_move_id"], unique=False)
    op.create_index("ix_stock_moves_reference", "stock_moves", ["reference"], unique=False)
    op.create_index("ix_stock_moves_series", "stock_moves", ["series_code", "series_year", "series_number"], unique=False)

    op.create_table(
        "stock_move_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("move_id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price_cents", sa.Integer(), nullable=True),
        sa.Column("unit_cost_cents", sa.Integer(), nullable=True),
        sa.Column("add_on_price_cents", sa.Integer(), nullable=True),
        sa.Column("add_on_cost_cents", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["move_id"], ["stock_moves.id"]),
        sa.ForeignKeyConstraint(["sku"], ["products.sku"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_stock_move_lines_move_id", "stock_move_lines", ["move_id"], unique=False)
    op.create_index("ix_stock_move_lines_sku_move", "stock_move_lines", ["sku", "move_id"], unique=False)

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("payload", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_audit_events_action", "audit_events", ["action"], unique=False)
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"], unique=False)
    op.create_index("ix_audit_events_occurred", "audit_events", ["occurred_at"], unique=False)


def downgrade():
    op.drop_index("ix_audit_events_occurred", table_name="audit_events")
    op.drop_index("ix_audit_events_entity", table_name="audit_events")
    op.drop_index("ix_audit_events_action", table_name="audit_events")
    op.drop_table("audit_events")

    op.drop_index("ix_stock_move_lines_sku_move", table_name="stock_move_lines")
    op.drop_index("ix_stock_move_lines_move_id", table_name="stock_move_lines")
    op.drop_table("stock_move_lines")

    op.drop_index("ix_stock_moves_series", table_name="stock_moves")
    op.drop_index("ix_stock_moves_reference", table_name="stock_moves")
    op.drop_index("ix_stock_moves_related_move_id", table_name="stock_moves")
    op.drop_index("ix_stock_moves_customer_id", table_name="stock_moves")
    op.drop_index("ix_stock_moves_to_id", table_name="stock_moves")
    op.drop_index("ix_stock_moves_from_id", table_name="stock_moves")
    op.drop_index("ix_stock_moves_type_date", table_name="stock_moves")
    op.drop_index("ix_stock_moves_type", table_name="stock_moves")
    op.drop_table("stock_moves")

    op.drop_index("ix_document_series_scope_active", table_name="document_series")
    op.drop_table("document_series")

    op.drop_table("customers")
    op.drop_table("product_counters")

    op.drop_index("ix_products_active", table_name="products")
    op.drop_index("ix_products_name", table_name="products")
    op.drop_table("products")

    op.drop_index("ix_locations_type_active", table_name="locations")
    op.drop_index("ix_locations_type", table_name="locations")
    op.drop_table("locations")
