"""Initial voucher sale schema

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


def _created_at():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade():
    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("commission_balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _created_at(),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "commission_groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.UniqueConstraint("name", name="uq_commission_groups_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "voucher_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("network_provider", sa.String(length=64), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("sub_category", sa.String(length=64), nullable=True),
        sa.Column("instructions", sa.Text(), nullable=True),
        sa.Column("help_text", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_voucher_types_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_voucher_types_network_provider", "voucher_types", ["network_provider"])
    op.create_index("ix_voucher_types_category", "voucher_types", ["category"])
    op.create_index("ix_voucher_types_is_active", "voucher_types", ["is_active"])
    op.create_index("ix_voucher_types_category_network", "voucher_types", ["category", "network_provider"])

    op.create_table(
        "retailers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("contact_name", sa.String(length=128), nullable=True),
        sa.Column("contact_email", sa.String(length=255), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.Column("balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("credit_limit_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("credit_used_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("commission_balance_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("commission_group_id", sa.Integer(), sa.ForeignKey("commission_groups.id"), nullable=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default="1"),
        _created_at(),
        sa.CheckConstraint("credit_used_cents <= credit_limit_cents", name="ck_retailers_credit_within_limit"),
        sa.CheckConstraint("balance_cents >= 0", name="ck_retailers_balance_non_negative"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_retailers_status", "retailers", ["status"])
    op.create_index("ix_retailers_commission_group_id", "retailers", ["commission_group_id"])
    op.create_index("ix_retailers_agent_id", "retailers", ["agent_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("retailer_id", sa.Integer(), sa.ForeignKey("retailers.id"), nullable=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_users_username", "users", ["username"])
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_retailer_id", "users", ["retailer_id"])
    op.create_index("ix_users_agent_id", "users", ["agent_id"])

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        _created_at(),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(length=255), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_user_id", "session_tokens", ["user_id"])
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_is_revoked", "session_tokens", ["is_revoked"])

    op.create_table(
        "terminals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("retailer_id", sa.Integer(), sa.ForeignKey("retailers.id"), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("cashier_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_active_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("retailer_id", "name", name="uq_terminals_retailer_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_terminals_retailer_id", "terminals", ["retailer_id"])
    op.create_index("ix_terminals_is_active", "terminals", ["is_active"])

    op.create_table(
        "commission_group_rates",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("commission_group_id", sa.Integer(), sa.ForeignKey("commission_groups.id"), nullable=False),
        sa.Column("voucher_type_id", sa.Integer(), sa.ForeignKey("voucher_types.id"), nullable=False),
        sa.Column("retailer_pct", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("agent_pct", sa.Numeric(6, 3), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("commission_group_id", "voucher_type_id", name="uq_commission_rates_group_type"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_commission_group_rates_commission_group_id", "commission_group_rates", ["commission_group_id"])
    op.create_index("ix_commission_group_rates_voucher_type_id", "commission_group_rates", ["voucher_type_id"])

    op.create_table(
        "voucher_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("voucher_type_id", sa.Integer(), sa.ForeignKey("voucher_types.id"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("pin", sa.String(length=64), nullable=False),
        sa.Column("serial_number", sa.String(length=64), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="available"),
        sa.Column("sold_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("voucher_type_id", "pin", name="uq_voucher_inventory_type_pin"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_voucher_inventory_voucher_type_id", "voucher_inventory", ["voucher_type_id"])
    op.create_index("ix_voucher_inventory_status", "voucher_inventory", ["status"])
    op.create_index(
        "ix_voucher_inventory_type_status_amount",
        "voucher_inventory",
        ["voucher_type_id", "status", "amount_cents"],
    )

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("voucher_inventory_id", sa.Integer(), sa.ForeignKey("voucher_inventory.id"), nullable=False),
        sa.Column("voucher_type_id", sa.Integer(), sa.ForeignKey("voucher_types.id"), nullable=False),
        sa.Column("retailer_id", sa.Integer(), sa.ForeignKey("retailers.id"), nullable=False),
        sa.Column("terminal_id", sa.Integer(), sa.ForeignKey("terminals.id"), nullable=False),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("ref_number", sa.String(length=32), nullable=False),
        sa.Column("sale_amount_cents", sa.Integer(), nullable=False),
        sa.Column("retailer_commission_pct", sa.Numeric(6, 3), nullable=False),
        sa.Column("agent_commission_pct", sa.Numeric(6, 3), nullable=False),
        sa.Column("retailer_commission_cents", sa.Integer(), nullable=False),
        sa.Column("agent_commission_cents", sa.Integer(), nullable=False),
        sa.Column("from_balance_cents", sa.Integer(), nullable=False),
        sa.Column("from_credit_cents", sa.Integer(), nullable=False),
        sa.Column("sold_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("voucher_inventory_id", name="uq_sales_voucher_inventory"),
        sa.UniqueConstraint("ref_number", name="uq_sales_ref_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_voucher_type_id", "sales", ["voucher_type_id"])
    op.create_index("ix_sales_agent_id", "sales", ["agent_id"])
    op.create_index("ix_sales_terminal_created", "sales", ["terminal_id", "created_at"])
    op.create_index("ix_sales_retailer_created", "sales", ["retailer_id", "created_at"])

    op.create_table(
        "retailer_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("retailer_id", sa.Integer(), sa.ForeignKey("retailers.id"), nullable=False),
        sa.Column("transaction_type", sa.String(length=16), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("balance_after_cents", sa.Integer(), nullable=False),
        sa.Column("credit_used_after_cents", sa.Integer(), nullable=False),
        sa.Column("commission_balance_after_cents", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=True),
        sa.Column("agent_id", sa.Integer(), sa.ForeignKey("agents.id"), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_retailer_transactions_retailer_id", "retailer_transactions", ["retailer_id"])
    op.create_index("ix_retailer_transactions_transaction_type", "retailer_transactions", ["transaction_type"])
    op.create_index("ix_retailer_transactions_sale_id", "retailer_transactions", ["sale_id"])
    op.create_index("ix_retailer_transactions_occurred_at", "retailer_transactions", ["occurred_at"])
    op.create_index("ix_retailer_txns_retailer_occurred", "retailer_transactions", ["retailer_id", "occurred_at"])


def downgrade():
    op.drop_table("retailer_transactions")
    op.drop_table("sales")
    op.drop_table("voucher_inventory")
    op.drop_table("commission_group_rates")
    op.drop_table("terminals")
    op.drop_table("session_tokens")
    op.drop_table("users")
    op.drop_table("retailers")
    op.drop_table("voucher_types")
    op.drop_table("commission_groups")
    op.drop_table("agents")
