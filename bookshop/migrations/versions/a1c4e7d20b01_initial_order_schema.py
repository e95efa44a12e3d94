"""initial order schema

Revision ID: a1c4e7d20b01
Revises:
Create Date: 2025-11-03 09:14:52.318470

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7d20b01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=200), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )
    with op.batch_alter_table("user", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_user_email"), ["email"], unique=True)

    op.create_table(
        "book",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title_en", sa.String(length=255), nullable=False),
        sa.Column("title_ta", sa.String(length=255), nullable=True),
        sa.Column("author", sa.String(length=150), nullable=True),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("discounted_price", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "order_counter",
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )

    op.create_table(
        "payment_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("epayum_enabled", sa.Boolean(), nullable=False),
        sa.Column("epayum_account_number", sa.String(length=64), nullable=True),
        sa.Column("epayum_account_name", sa.String(length=120), nullable=True),
        sa.Column("epayum_bank_name", sa.String(length=120), nullable=True),
        sa.Column("epayum_link", sa.String(length=255), nullable=True),
        sa.Column("epayum_instructions", sa.Text(), nullable=True),
        sa.Column("fbx_enabled", sa.Boolean(), nullable=False),
        sa.Column("fbx_account_number", sa.String(length=64), nullable=True),
        sa.Column("fbx_account_name", sa.String(length=120), nullable=True),
        sa.Column("fbx_bank_name", sa.String(length=120), nullable=True),
        sa.Column("fbx_instructions", sa.Text(), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("shipping_cost", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "purchased_order",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.String(length=16), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(length=100), nullable=False),
        sa.Column("customer_email", sa.String(length=255), nullable=False),
        sa.Column("customer_phone", sa.String(length=20), nullable=False),
        sa.Column("billing_address", sa.Text(), nullable=True),
        sa.Column("payment_method", sa.String(length=16), nullable=False),
        sa.Column("payment_instructions", sa.Text(), nullable=False),
        sa.Column("payment_file", sa.String(length=255), nullable=True),
        sa.Column("bank_name", sa.String(length=120), nullable=True),
        sa.Column("bank_account_number", sa.String(length=64), nullable=True),
        sa.Column("bank_account_holder", sa.String(length=120), nullable=True),
        sa.Column("epayum_link", sa.String(length=255), nullable=True),
        sa.Column("transaction_id", sa.String(length=120), nullable=True),
        sa.Column("verification_status", sa.String(length=16), nullable=False),
        sa.Column("verified_by_id", sa.Integer(), nullable=True),
        sa.Column("verified_at", sa.DateTime(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("shipping_enabled", sa.Boolean(), nullable=False),
        sa.Column("shipping_address", sa.String(length=500), nullable=True),
        sa.Column("shipping_cost", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("carrier", sa.String(length=80), nullable=True),
        sa.Column("tracking_number", sa.String(length=120), nullable=True),
        sa.Column("shipping_status", sa.String(length=16), nullable=False),
        sa.Column("shipped_at", sa.DateTime(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.Column("subtotal", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("shipping_total", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("total", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("order_type", sa.String(length=16), nullable=False),
        sa.Column("notes", sa.String(length=1000), nullable=True),
        sa.Column("admin_notes", sa.String(length=1000), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["verified_by_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("purchased_order", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_purchased_order_order_id"), ["order_id"], unique=True)
        batch_op.create_index(batch_op.f("ix_purchased_order_user_id"), ["user_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_purchased_order_customer_email"), ["customer_email"], unique=False)
        batch_op.create_index(batch_op.f("ix_purchased_order_payment_method"), ["payment_method"], unique=False)
        batch_op.create_index(batch_op.f("ix_purchased_order_status"), ["status"], unique=False)
        batch_op.create_index(batch_op.f("ix_purchased_order_created_at"), ["created_at"], unique=False)

    op.create_table(
        "order_line",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_pk", sa.Integer(), nullable=False),
        sa.Column("book_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.ForeignKeyConstraint(["book_id"], ["book.id"]),
        sa.ForeignKeyConstraint(["order_pk"], ["purchased_order.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("order_line", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_order_line_order_pk"), ["order_pk"], unique=False)

    op.create_table(
        "order_status_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_pk", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("updated_by_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["order_pk"], ["purchased_order.id"]),
        sa.ForeignKeyConstraint(["updated_by_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("order_status_history", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_order_status_history_order_pk"), ["order_pk"], unique=False)


def downgrade():
    with op.batch_alter_table("order_status_history", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_order_status_history_order_pk"))
    op.drop_table("order_status_history")

    with op.batch_alter_table("order_line", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_order_line_order_pk"))
    op.drop_table("order_line")

    with op.batch_alter_table("purchased_order", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_purchased_order_created_at"))
        batch_op.drop_index(batch_op.f("ix_purchased_order_status"))
        batch_op.drop_index(batch_op.f("ix_purchased_order_payment_method"))
        batch_op.drop_index(batch_op.f("ix_purchased_order_customer_email"))
        batch_op.drop_index(batch_op.f("ix_purchased_order_user_id"))
        batch_op.drop_index(batch_op.f("ix_purchased_order_order_id"))
    op.drop_table("purchased_order")

    op.drop_table("payment_settings")
    op.drop_table("order_counter")
    op.drop_table("book")

    with op.batch_alter_table("user", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_user_email"))
    op.drop_table("user")
