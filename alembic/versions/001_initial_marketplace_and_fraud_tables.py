"""Initial migration: users, marketplace tables, audit chain and fraud tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

GENESIS_HASH = "0" * 64


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("id_verified", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Marketplace tables read by the fraud signal queries
    op.create_table(
        "projects",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("employer_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("budget", sa.Numeric(12, 2), nullable=True),
        _created_at(),
    )
    op.create_index("ix_projects_employer_id", "projects", ["employer_id"])
    op.create_index("ix_projects_created_at", "projects", ["created_at"])

    op.create_table(
        "bids",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("bidder_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("project_id", UUID(as_uuid=True), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=True),
        sa.Column("bid_amount", sa.Numeric(12, 2), nullable=False),
        _created_at(),
    )
    op.create_index("ix_bids_bidder_id", "bids", ["bidder_id"])
    op.create_index("ix_bids_project_id", "bids", ["project_id"])
    op.create_index("ix_bids_created_at", "bids", ["created_at"])

    op.create_table(
        "payments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("payer_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("payee_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        _created_at(),
    )
    op.create_index("ix_payments_payer_id", "payments", ["payer_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])

    op.create_table(
        "messages",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("sender_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        _created_at(),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_created_at", "messages", ["created_at"])

    # Hash-chained audit log; rows are never updated or deleted
    op.create_table(
        "immutable_audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("log_id", sa.String(40), nullable=False),
        sa.Column("sequence", sa.Integer, nullable=False, unique=True),
        sa.Column("table_name", sa.String(64), nullable=False),
        sa.Column("action", sa.String(10), nullable=False),
        sa.Column("record_id", sa.String(64), nullable=True),
        sa.Column("user_id", UUID(as_uuid=True), nullable=True),
        sa.Column("user_type", sa.String(10), nullable=False),
        sa.Column("old_values", JSONB, nullable=True),
        sa.Column("new_values", JSONB, nullable=True),
        sa.Column("metadata", JSONB, nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", JSONB, nullable=True),
        sa.Column("session_id", sa.String(255), nullable=True),
        sa.Column("logged_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("hash_signature", sa.String(64), nullable=False),
        sa.Column("previous_hash", sa.String(64), nullable=False),
    )
    op.create_index("ix_immutable_audit_logs_log_id", "immutable_audit_logs", ["log_id"], unique=True)
    op.create_index("ix_immutable_audit_logs_table_name", "immutable_audit_logs", ["table_name"])
    op.create_index("ix_immutable_audit_logs_action", "immutable_audit_logs", ["action"])
    op.create_index("ix_immutable_audit_logs_record_id", "immutable_audit_logs", ["record_id"])
    op.create_index("ix_immutable_audit_logs_user_id", "immutable_audit_logs", ["user_id"])
    op.create_index("ix_immutable_audit_logs_ip_address", "immutable_audit_logs", ["ip_address"])
    op.create_index("ix_immutable_audit_logs_logged_at", "immutable_audit_logs", ["logged_at"])

    chain_head = op.create_table(
        "audit_chain_head",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("last_hash", sa.String(64), nullable=False),
    )
    op.bulk_insert(chain_head, [{"id": 1, "sequence": 0, "last_hash": GENESIS_HASH}])

    op.create_table(
        "fraud_detection_cases",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("case_id", sa.String(40), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("fraud_type", sa.String(40), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("evidence_data", JSONB, nullable=True),
        sa.Column("fraud_score", sa.Integer, nullable=False, server_default="0"),
        sa.Column("severity", sa.String(10), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="investigating"),
        sa.Column("financial_impact", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("recovered_amount", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column(
            "assigned_admin_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("investigation_notes", JSONB, nullable=True),
        sa.Column("resolution_data", JSONB, nullable=True),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_fraud_detection_cases_case_id", "fraud_detection_cases", ["case_id"], unique=True)
    op.create_index("ix_fraud_detection_cases_user_id", "fraud_detection_cases", ["user_id"])
    op.create_index("ix_fraud_detection_cases_severity", "fraud_detection_cases", ["severity"])
    op.create_index("ix_fraud_detection_cases_status", "fraud_detection_cases", ["status"])
    op.create_index("ix_fraud_detection_cases_created_at", "fraud_detection_cases", ["created_at"])

    op.create_table(
        "fraud_detection_alerts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("alert_id", sa.String(40), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "fraud_case_id",
            UUID(as_uuid=True),
            sa.ForeignKey("fraud_detection_cases.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("alert_type", sa.String(20), nullable=False),
        sa.Column("alert_message", sa.Text, nullable=False),
        sa.Column("alert_data", JSONB, nullable=False),
        sa.Column("risk_score", sa.Integer, nullable=False),
        sa.Column("severity", sa.String(10), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("amount", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "assigned_admin_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("acknowledged_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_notes", JSONB, nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", JSONB, nullable=True),
        sa.Column("context_data", JSONB, nullable=True),
        _created_at(),
    )
    op.create_index("ix_fraud_detection_alerts_alert_id", "fraud_detection_alerts", ["alert_id"], unique=True)
    op.create_index("ix_fraud_detection_alerts_user_id", "fraud_detection_alerts", ["user_id"])
    op.create_index("ix_fraud_detection_alerts_fraud_case_id", "fraud_detection_alerts", ["fraud_case_id"])
    op.create_index("ix_fraud_detection_alerts_alert_type", "fraud_detection_alerts", ["alert_type"])
    op.create_index("ix_fraud_detection_alerts_severity", "fraud_detection_alerts", ["severity"])
    op.create_index("ix_fraud_detection_alerts_status", "fraud_detection_alerts", ["status"])
    op.create_index("ix_fraud_detection_alerts_triggered_at", "fraud_detection_alerts", ["triggered_at"])
    op.create_index("ix_fraud_detection_alerts_created_at", "fraud_detection_alerts", ["created_at"])


def downgrade() -> None:
    op.drop_table("fraud_detection_alerts")
    op.drop_table("fraud_detection_cases")
    op.drop_table("audit_chain_head")
    op.drop_table("immutable_audit_logs")
    op.drop_table("messages")
    op.drop_table("payments")
    op.drop_table("bids")
    op.drop_table("projects")
    op.drop_table("users")
