"""quote lifecycle, settlement and penalty baseline schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _money() -> sa.Numeric:
    return sa.Numeric(14, 2)


def _percent() -> sa.Numeric:
    return sa.Numeric(5, 2)


def _ts() -> sa.DateTime:
    return sa.DateTime(timezone=True)


def _audit() -> list[sa.Column]:
    return [
        sa.Column("created_at", _ts(), nullable=False),
        sa.Column("updated_at", _ts(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "pricing_configs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("commission_percent", _percent(), nullable=False),
        sa.Column("overprice_percent", _percent(), nullable=False),
        sa.Column("vat_percent", _percent(), nullable=False),
        sa.Column("max_price_per_kwp", sa.Numeric(12, 2), nullable=False),
        sa.Column("min_system_size_kwp", sa.Numeric(10, 2), nullable=False),
        sa.Column("max_system_size_kwp", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", _ts(), nullable=False),
        sa.Column("deactivated_at", _ts(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("version"),
    )
    op.create_index("ix_pricing_configs_is_active", "pricing_configs", ["is_active"])

    op.create_table(
        "quote_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("property_details", sa.JSON(), nullable=False),
        sa.Column("electricity_consumption", sa.JSON(), nullable=False),
        sa.Column("location", sa.JSON(), nullable=False),
        sa.Column("system_size_kwp", sa.Numeric(10, 2), nullable=False),
        sa.Column("roof_size_sqm", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("contractor_ids", sa.JSON(), nullable=False),
        sa.Column("penalty_acknowledged", sa.Boolean(), nullable=False),
        sa.Column("selected_quotation_id", sa.Integer(), nullable=True),
        sa.Column("selected_at", _ts(), nullable=True),
        sa.Column("installation_deadline", _ts(), nullable=True),
        sa.Column("installation_completed_at", _ts(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", sa.Integer(), nullable=True),
        sa.Column("cancelled_at", _ts(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quote_requests_status", "quote_requests", ["status"])
    op.create_index("idx_quote_requests_user_status", "quote_requests", ["user_id", "status"])

    op.create_table(
        "contractor_quote_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("contractor_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("assigned_at", _ts(), nullable=False),
        sa.Column("viewed_at", _ts(), nullable=True),
        sa.Column("responded_at", _ts(), nullable=True),
        sa.ForeignKeyConstraint(["request_id"], ["quote_requests.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_id", "contractor_id", name="uq_assignments_request_contractor"),
    )
    op.create_index(
        "idx_assignments_contractor_status", "contractor_quote_assignments", ["contractor_id", "status"]
    )

    op.create_table(
        "contractor_quotes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("contractor_id", sa.Integer(), nullable=False),
        sa.Column("assignment_id", sa.Integer(), nullable=False),
        sa.Column("base_price", _money(), nullable=False),
        sa.Column("original_base_price", _money(), nullable=True),
        sa.Column("system_size_kwp", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_per_kwp", _money(), nullable=False),
        sa.Column("overprice_amount", _money(), nullable=False),
        sa.Column("total_user_price", _money(), nullable=False),
        sa.Column("commission_amount", _money(), nullable=False),
        sa.Column("contractor_net_amount", _money(), nullable=False),
        sa.Column("platform_revenue", _money(), nullable=False),
        sa.Column("vat_amount", _money(), nullable=False),
        sa.Column("total_payable", _money(), nullable=False),
        sa.Column("commission_percent", _percent(), nullable=False),
        sa.Column("overprice_percent", _percent(), nullable=False),
        sa.Column("vat_percent", _percent(), nullable=False),
        sa.Column("pricing_config_version", sa.Integer(), nullable=False),
        sa.Column("installation_timeline_days", sa.Integer(), nullable=False),
        sa.Column("system_specs", sa.JSON(), nullable=False),
        sa.Column("warranty_terms", sa.Text(), nullable=False),
        sa.Column("maintenance_terms", sa.Text(), nullable=False),
        sa.Column("panel_brand", sa.String(120), nullable=True),
        sa.Column("panel_model", sa.String(120), nullable=True),
        sa.Column("panel_quantity", sa.Integer(), nullable=True),
        sa.Column("inverter_brand", sa.String(120), nullable=True),
        sa.Column("inverter_model", sa.String(120), nullable=True),
        sa.Column("inverter_quantity", sa.Integer(), nullable=True),
        sa.Column("contractor_vat_number", sa.String(64), nullable=True),
        sa.Column("admin_status", sa.String(32), nullable=False),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("price_override_note", sa.Text(), nullable=True),
        sa.Column("reviewed_by", sa.Integer(), nullable=True),
        sa.Column("reviewed_at", _ts(), nullable=True),
        sa.Column("revision_count", sa.Integer(), nullable=False),
        sa.Column("is_selected", sa.Boolean(), nullable=False),
        sa.Column("selected_at", _ts(), nullable=True),
        sa.Column("rejected_by_selection_of", sa.Integer(), nullable=True),
        sa.Column("expires_at", _ts(), nullable=False),
        *_audit(),
        sa.ForeignKeyConstraint(["request_id"], ["quote_requests.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["assignment_id"], ["contractor_quote_assignments.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("request_id", "contractor_id", name="uq_contractor_quotes_request_contractor"),
    )
    op.create_index("ix_contractor_quotes_contractor_id", "contractor_quotes", ["contractor_id"])
    op.create_index("idx_contractor_quotes_request_status", "contractor_quotes", ["request_id", "admin_status"])
    op.create_index(
        "uq_contractor_quotes_one_selected",
        "contractor_quotes",
        ["request_id"],
        unique=True,
        sqlite_where=sa.text("is_selected = 1"),
        postgresql_where=sa.text("is_selected IS TRUE"),
    )

    op.create_table(
        "quotation_line_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("quotation_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("units", sa.Integer(), nullable=False),
        sa.Column("unit_price", _money(), nullable=False),
        sa.Column("total_price", _money(), nullable=False),
        sa.Column("commission_amount", _money(), nullable=False),
        sa.Column("overprice_amount", _money(), nullable=False),
        sa.Column("user_price", _money(), nullable=False),
        sa.Column("vendor_net", _money(), nullable=False),
        sa.ForeignKeyConstraint(["quotation_id"], ["contractor_quotes.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quotation_line_items_quotation_id", "quotation_line_items", ["quotation_id"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(64), nullable=False),
        sa.Column("quotation_id", sa.Integer(), nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("contractor_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("gross_amount", _money(), nullable=False),
        sa.Column("overprice_deduction", _money(), nullable=False),
        sa.Column("commission_deduction", _money(), nullable=False),
        sa.Column("penalty_deduction", _money(), nullable=False),
        sa.Column("net_amount", _money(), nullable=False),
        sa.Column("vat_percent", _percent(), nullable=False),
        sa.Column("vat_amount", _money(), nullable=False),
        sa.Column("total_with_vat", _money(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("issued_at", _ts(), nullable=False),
        sa.Column("due_date", _ts(), nullable=False),
        sa.Column("paid_at", _ts(), nullable=True),
        sa.Column("payment_reference", sa.String(128), nullable=True),
        *_audit(),
        sa.ForeignKeyConstraint(["quotation_id"], ["contractor_quotes.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["request_id"], ["quote_requests.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_number"),
        sa.UniqueConstraint("quotation_id"),
    )
    op.create_index("idx_invoices_contractor_status", "invoices", ["contractor_id", "status"])

    op.create_table(
        "contractor_wallets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("contractor_id", sa.Integer(), nullable=False),
        sa.Column("balance", _money(), nullable=False),
        sa.Column("total_earned", _money(), nullable=False),
        sa.Column("total_commission_paid", _money(), nullable=False),
        sa.Column("total_penalties", _money(), nullable=False),
        sa.Column("total_withdrawn", _money(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_audit(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("contractor_id"),
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("wallet_id", sa.Integer(), nullable=False),
        sa.Column("contractor_id", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(32), nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("balance_before", _money(), nullable=False),
        sa.Column("balance_after", _money(), nullable=False),
        sa.Column("reference_type", sa.String(32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(["wallet_id"], ["contractor_wallets.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_wallet_transactions_wallet_created", "wallet_transactions", ["wallet_id", "created_at"])

    op.create_table(
        "penalty_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("penalty_type", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("calculation_type", sa.String(32), nullable=False),
        sa.Column("amount_value", _money(), nullable=False),
        sa.Column("max_amount", _money(), nullable=True),
        sa.Column("grace_period_hours", sa.Integer(), nullable=False),
        sa.Column("severity", sa.String(32), nullable=False),
        sa.Column("auto_apply", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("created_at", _ts(), nullable=False),
        sa.Column("deactivated_at", _ts(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", "version", name="uq_penalty_rules_code_version"),
    )
    op.create_index("idx_penalty_rules_type_active", "penalty_rules", ["penalty_type", "is_active"])

    op.create_table(
        "sla_violations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("fingerprint", sa.String(128), nullable=False),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("quotation_id", sa.Integer(), nullable=True),
        sa.Column("contractor_id", sa.Integer(), nullable=False),
        sa.Column("violation_type", sa.String(32), nullable=False),
        sa.Column("severity", sa.String(32), nullable=False),
        sa.Column("days_overdue", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("evidence", sa.JSON(), nullable=False),
        sa.Column("reported_by", sa.Integer(), nullable=True),
        sa.Column("penalty_id", sa.Integer(), nullable=True),
        sa.Column("detected_at", _ts(), nullable=False),
        sa.Column("last_seen_at", _ts(), nullable=False),
        sa.ForeignKeyConstraint(["request_id"], ["quote_requests.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["quotation_id"], ["contractor_quotes.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("fingerprint"),
    )
    op.create_index("ix_sla_violations_contractor_id", "sla_violations", ["contractor_id"])

    op.create_table(
        "penalties",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("fingerprint", sa.String(128), nullable=False),
        sa.Column("penalty_type", sa.String(32), nullable=False),
        sa.Column("severity", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("penalized_party", sa.String(32), nullable=False),
        sa.Column("contractor_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("request_id", sa.Integer(), nullable=False),
        sa.Column("quotation_id", sa.Integer(), nullable=True),
        sa.Column("violation_id", sa.Integer(), nullable=True),
        sa.Column("rule_id", sa.Integer(), nullable=True),
        sa.Column("rule_version", sa.Integer(), nullable=True),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("adjusted_amount", _money(), nullable=True),
        sa.Column("contractor_share", _money(), nullable=False),
        sa.Column("platform_share", _money(), nullable=False),
        sa.Column("calculation", sa.JSON(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("evidence", sa.JSON(), nullable=False),
        sa.Column("is_automatic", sa.Boolean(), nullable=False),
        sa.Column("applied_by", sa.Integer(), nullable=True),
        sa.Column("applied_at", _ts(), nullable=False),
        sa.Column("debit_transaction_id", sa.Integer(), nullable=True),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("disputed_by", sa.Integer(), nullable=True),
        sa.Column("disputed_at", _ts(), nullable=True),
        sa.Column("resolution", sa.String(32), nullable=True),
        sa.Column("resolution_notes", sa.Text(), nullable=True),
        sa.Column("resolved_by", sa.Integer(), nullable=True),
        sa.Column("resolved_at", _ts(), nullable=True),
        sa.Column("refund_transaction_id", sa.Integer(), nullable=True),
        sa.Column("adjustment_transaction_id", sa.Integer(), nullable=True),
        *_audit(),
        sa.ForeignKeyConstraint(["request_id"], ["quote_requests.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["quotation_id"], ["contractor_quotes.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["violation_id"], ["sla_violations.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["rule_id"], ["penalty_rules.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("fingerprint"),
    )
    op.create_index("idx_penalties_contractor_status", "penalties", ["contractor_id", "status"])
    op.create_index("idx_penalties_type_applied", "penalties", ["penalty_type", "applied_at"])


def downgrade() -> None:
    op.drop_table("penalties")
    op.drop_table("sla_violations")
    op.drop_table("penalty_rules")
    op.drop_table("wallet_transactions")
    op.drop_table("contractor_wallets")
    op.drop_table("invoices")
    op.drop_table("quotation_line_items")
    op.drop_table("contractor_quotes")
    op.drop_table("contractor_quote_assignments")
    op.drop_table("quote_requests")
    op.drop_table("pricing_configs")
