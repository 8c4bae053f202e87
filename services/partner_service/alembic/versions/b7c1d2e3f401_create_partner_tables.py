"""create partner wallet, mg plan and booking tables

Revision ID: b7c1d2e3f401
Revises:
Create Date: 2026-10-01 09:00:00.000000
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "b7c1d2e3f401"
down_revision = None
branch_labels = None
depends_on = None


def _enum(name, *values):
    return sa.Enum(*values, name=name)


def upgrade() -> None:
    op.create_table(
        "mg_plans",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("leads", sa.Integer(), nullable=False),
        sa.Column("commission", sa.Numeric(5, 2), nullable=False),
        sa.Column("lead_fee", sa.Numeric(12, 2), nullable=False),
        sa.Column("min_wallet_balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("refund_policy", sa.Text(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("icon", sa.String(), nullable=True),
        sa.Column(
            "validity_type",
            _enum(
                "plan_validity_type_enum", "monthly", "quarterly", "yearly", "custom"
            ),
            nullable=False,
        ),
        sa.Column("validity_months", sa.Integer(), nullable=False),
        sa.Column(
            "partner_type",
            _enum("plan_partner_type_enum", "individual", "franchise", "both"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_mg_plans")),
        sa.UniqueConstraint(
            "name", "partner_type", name="uq_mg_plans_name_partner_type"
        ),
        sa.CheckConstraint("price >= 0", name=op.f("ck_mg_plans_price_non_negative")),
        sa.CheckConstraint("leads >= 0", name=op.f("ck_mg_plans_leads_non_negative")),
        sa.CheckConstraint(
            "commission >= 0 AND commission <= 100",
            name=op.f("ck_mg_plans_commission_percentage"),
        ),
        sa.CheckConstraint(
            "lead_fee >= 0", name=op.f("ck_mg_plans_lead_fee_non_negative")
        ),
        sa.CheckConstraint(
            "min_wallet_balance >= 0",
            name=op.f("ck_mg_plans_min_balance_non_negative"),
        ),
        sa.CheckConstraint(
            "validity_months >= 1", name=op.f("ck_mg_plans_validity_months_positive")
        ),
    )

    op.create_table(
        "partners",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column(
            "partner_type",
            _enum("partner_type_enum", "individual", "franchise"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("current_plan_id", sa.Uuid(), nullable=True),
        sa.Column("plan_subscribed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("plan_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lead_quota", sa.Integer(), nullable=False),
        sa.Column("leads_used", sa.Integer(), nullable=False),
        sa.Column("plan_history", sa.JSON(), nullable=False),
        sa.Column("lead_acceptance_paused", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_partners")),
        sa.UniqueConstraint("phone", name=op.f("uq_partners_phone")),
        sa.ForeignKeyConstraint(
            ["current_plan_id"],
            ["mg_plans.id"],
            name=op.f("fk_partners_current_plan_id_mg_plans"),
        ),
        sa.CheckConstraint(
            "leads_used >= 0", name=op.f("ck_partners_leads_used_non_negative")
        ),
    )
    op.create_index(
        op.f("ix_partners_current_plan_id"), "partners", ["current_plan_id"]
    )

    op.create_table(
        "partner_wallets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("partner_id", sa.Uuid(), nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            _enum("partner_wallet_status_enum", "active", "blocked"),
            nullable=False,
        ),
        sa.Column("transaction_seq", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_partner_wallets")),
        sa.ForeignKeyConstraint(
            ["partner_id"],
            ["partners.id"],
            name=op.f("fk_partner_wallets_partner_id_partners"),
        ),
    )
    op.create_index(
        op.f("ix_partner_wallets_partner_id"),
        "partner_wallets",
        ["partner_id"],
        unique=True,
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("wallet_id", sa.Uuid(), nullable=False),
        sa.Column("partner_id", sa.Uuid(), nullable=False),
        sa.Column("transaction_ref", sa.String(32), nullable=False),
        sa.Column(
            "transaction_type",
            _enum("wallet_transaction_type_enum", "credit", "debit"),
            nullable=False,
        ),
        sa.Column(
            "purpose",
            _enum(
                "wallet_transaction_purpose_enum",
                "topup",
                "lead_fee",
                "admin_adjustment",
                "manual",
            ),
            nullable=False,
        ),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_before", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance_after", sa.Numeric(12, 2), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("reference", sa.String(), nullable=True),
        sa.Column("booking_id", sa.Uuid(), nullable=True),
        sa.Column("team_member_id", sa.Uuid(), nullable=True),
        sa.Column("initiated_by", sa.String(), nullable=True),
        sa.Column("txn_metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_wallet_transactions")),
        sa.ForeignKeyConstraint(
            ["wallet_id"],
            ["partner_wallets.id"],
            name=op.f("fk_wallet_transactions_wallet_id_partner_wallets"),
        ),
        sa.CheckConstraint(
            "amount > 0", name=op.f("ck_wallet_transactions_amount_positive")
        ),
    )
    op.create_index(
        op.f("ix_wallet_transactions_wallet_id"), "wallet_transactions", ["wallet_id"]
    )
    op.create_index(
        op.f("ix_wallet_transactions_partner_id"),
        "wallet_transactions",
        ["partner_id"],
    )
    op.create_index(
        op.f("ix_wallet_transactions_transaction_ref"),
        "wallet_transactions",
        ["transaction_ref"],
        unique=True,
    )
    op.create_index(
        "ix_wallet_transactions_wallet_sequence",
        "wallet_transactions",
        ["wallet_id", "sequence"],
        unique=True,
    )

    op.create_table(
        "wallet_audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("wallet_id", sa.Uuid(), nullable=False),
        sa.Column(
            "action",
            _enum(
                "wallet_audit_action_enum",
                "admin_credit",
                "admin_debit",
                "block",
                "unblock",
            ),
            nullable=False,
        ),
        sa.Column("performed_by", sa.String(), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_wallet_audit_logs")),
    )
    op.create_index(
        op.f("ix_wallet_audit_logs_wallet_id"), "wallet_audit_logs", ["wallet_id"]
    )

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("partner_id", sa.Uuid(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "status",
            _enum("payment_status_enum", "pending", "success", "failed"),
            nullable=False,
        ),
        sa.Column("payment_method", sa.String(), nullable=False),
        sa.Column("transaction_ref", sa.String(), nullable=False),
        sa.Column("fee_type", sa.String(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("source", sa.String(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_payment_transactions")),
    )
    op.create_index(
        op.f("ix_payment_transactions_partner_id"),
        "payment_transactions",
        ["partner_id"],
    )
    op.create_index(
        op.f("ix_payment_transactions_transaction_ref"),
        "payment_transactions",
        ["transaction_ref"],
    )
    op.create_index(
        op.f("ix_payment_transactions_fee_type"),
        "payment_transactions",
        ["fee_type"],
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("booking_number", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("service_name", sa.String(), nullable=False),
        sa.Column("pincode", sa.String(10), nullable=True),
        sa.Column(
            "status",
            _enum(
                "booking_status_enum",
                "pending",
                "accepted",
                "in_progress",
                "completed",
                "cancelled",
            ),
            nullable=False,
        ),
        sa.Column("partner_id", sa.Uuid(), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lead_fee_charged", sa.Numeric(12, 2), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_bookings")),
        sa.ForeignKeyConstraint(
            ["partner_id"],
            ["partners.id"],
            name=op.f("fk_bookings_partner_id_partners"),
        ),
    )
    op.create_index(op.f("ix_bookings_status"), "bookings", ["status"])
    op.create_index(op.f("ix_bookings_partner_id"), "bookings", ["partner_id"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("payment_transactions")
    op.drop_table("wallet_audit_logs")
    op.drop_table("wallet_transactions")
    op.drop_table("partner_wallets")
    op.drop_table("partners")
    op.drop_table("mg_plans")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "booking_status_enum",
            "payment_status_enum",
            "wallet_audit_action_enum",
            "wallet_transaction_purpose_enum",
            "wallet_transaction_type_enum",
            "partner_wallet_status_enum",
            "partner_type_enum",
            "plan_partner_type_enum",
            "plan_validity_type_enum",
        ):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
