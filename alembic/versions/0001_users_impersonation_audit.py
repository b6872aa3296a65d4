"""users and impersonation audit log

Revision ID: 0001_users_impersonation_audit
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_users_impersonation_audit"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=128), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "impersonation_audit_log",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("admin_user_id", sa.Integer(), nullable=False),
        sa.Column("admin_email", sa.String(length=255), nullable=False),
        sa.Column("target_user_id", sa.Integer(), nullable=False),
        sa.Column("target_user_email", sa.String(length=255), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=True),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("route", sa.String(length=255), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("actions_performed", sa.Integer(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=True),
    )
    op.create_index("ix_impersonation_audit_log_event_type", "impersonation_audit_log", ["event_type"])
    op.create_index("ix_impersonation_audit_log_session_id", "impersonation_audit_log", ["session_id"])
    op.create_index("ix_impersonation_audit_log_admin_user_id", "impersonation_audit_log", ["admin_user_id"])
    op.create_index("ix_impersonation_audit_log_target_user_id", "impersonation_audit_log", ["target_user_id"])
    op.create_index("ix_impersonation_audit_log_timestamp", "impersonation_audit_log", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_impersonation_audit_log_timestamp", table_name="impersonation_audit_log")
    op.drop_index("ix_impersonation_audit_log_target_user_id", table_name="impersonation_audit_log")
    op.drop_index("ix_impersonation_audit_log_admin_user_id", table_name="impersonation_audit_log")
    op.drop_index("ix_impersonation_audit_log_session_id", table_name="impersonation_audit_log")
    op.drop_index("ix_impersonation_audit_log_event_type", table_name="impersonation_audit_log")
    op.drop_table("impersonation_audit_log")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
