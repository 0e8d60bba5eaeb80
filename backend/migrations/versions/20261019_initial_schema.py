"""Initial schema: users, sessions, catalog, sales log, attachments

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(50), nullable=False),
        sa.Column("last_name", sa.String(50), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('SUPER-ADMIN', 'ADMIN', 'MANAGER', 'STAFF')", name="ck_users_role_valid"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_email", ["email"], unique=True)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("token_hash"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("measurement_type", sa.String(16), nullable=False),
        sa.Column("container_size", sa.String(16), nullable=True),
        sa.Column("price_per_unit", sa.Numeric(12, 2), nullable=False),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("current_stock", sa.Numeric(12, 3), nullable=False, server_default=sa.text("0")),
        sa.Column("min_stock_level", sa.Numeric(12, 3), nullable=False, server_default=sa.text("0")),
        sa.Column("supplier", sa.String(200), nullable=True),
        sa.Column("barcode", sa.String(100), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="ACTIVE"),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        sa.CheckConstraint("min_stock_level >= 0", name="ck_products_min_stock_non_negative"),
        sa.CheckConstraint("price_per_unit >= 0", name="ck_products_price_non_negative"),
        sa.CheckConstraint("cost_price >= 0", name="ck_products_cost_non_negative"),
        sa.CheckConstraint(
            "(measurement_type = 'container' AND container_size IS NOT NULL)"
            " OR (measurement_type = 'scale' AND container_size IS NULL)",
            name="ck_products_container_size_matches_measurement",
        ),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("barcode"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_name", ["name"], unique=False)
        batch_op.create_index("ix_products_status", ["status"], unique=False)
        batch_op.create_index("ix_products_category_status", ["category", "status"], unique=False)

    op.create_table(
        "sales_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_code", sa.String(64), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_cost", sa.Numeric(14, 2), nullable=False),
        sa.Column("profit", sa.Numeric(14, 2), nullable=False),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("customer_name", sa.String(100), nullable=True),
        sa.Column("customer_phone", sa.String(15), nullable=True),
        sa.Column("sold_by_user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("total_amount >= 0", name="ck_sales_total_amount_non_negative"),
        sa.CheckConstraint("total_cost >= 0", name="ck_sales_total_cost_non_negative"),
        sa.CheckConstraint(
            "payment_method IN ('cash', 'transfer', 'card', 'pos', 'credit')",
            name="ck_sales_payment_method_valid",
        ),
        sa.ForeignKeyConstraint(["sold_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_code"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_sales_transactions_created", ["created_at"], unique=False)
        batch_op.create_index("ix_sales_transactions_payment_method", ["payment_method"], unique=False)
        batch_op.create_index("ix_sales_transactions_sold_by_user_id", ["sold_by_user_id"], unique=False)

    op.create_table(
        "sales_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("line_total", sa.Numeric(14, 2), nullable=False),
        sa.Column("line_cost", sa.Numeric(14, 2), nullable=False),
        sa.Column("measurement_type", sa.String(16), nullable=False),
        sa.Column("container_size", sa.String(16), nullable=True),
        sa.CheckConstraint("quantity > 0", name="ck_sales_lines_quantity_positive"),
        sa.ForeignKeyConstraint(["transaction_id"], ["sales_transactions.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("transaction_id", "position", name="uq_sales_lines_transaction_position"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales_lines", schema=None) as batch_op:
        batch_op.create_index("ix_sales_lines_transaction_id", ["transaction_id"], unique=False)
        batch_op.create_index("ix_sales_lines_product_transaction", ["product_id", "transaction_id"], unique=False)

    op.create_table(
        "file_attachments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("model_name", sa.String(64), nullable=False),
        sa.Column("document_id", sa.String(64), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("stored_name", sa.String(255), nullable=False),
        sa.Column("content_type", sa.String(128), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("stored_name"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("file_attachments", schema=None) as batch_op:
        batch_op.create_index("ix_file_attachments_document", ["model_name", "document_id"], unique=False)


def downgrade():
    with op.batch_alter_table("file_attachments", schema=None) as batch_op:
        batch_op.drop_index("ix_file_attachments_document")
    op.drop_table("file_attachments")

    with op.batch_alter_table("sales_lines", schema=None) as batch_op:
        batch_op.drop_index("ix_sales_lines_product_transaction")
        batch_op.drop_index("ix_sales_lines_transaction_id")
    op.drop_table("sales_lines")

    with op.batch_alter_table("sales_transactions", schema=None) as batch_op:
        batch_op.drop_index("ix_sales_transactions_sold_by_user_id")
        batch_op.drop_index("ix_sales_transactions_payment_method")
        batch_op.drop_index("ix_sales_transactions_created")
    op.drop_table("sales_transactions")

    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.drop_index("ix_products_category_status")
        batch_op.drop_index("ix_products_status")
        batch_op.drop_index("ix_products_name")
    op.drop_table("products")

    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.drop_index("ix_session_tokens_user_id")
    op.drop_table("session_tokens")

    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.drop_index("ix_users_email")
    op.drop_table("users")
