"""account_security_tables
Revision ID: 0001_account_security
Revises:
Create Date: 2026-10-19 09:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_account_security"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Minimal users table; the host application may already own a richer one
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=False)

    op.create_table(
        "login_attempts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            nullable=True,
            comment="Resolved from username at write time (null for unknown users)",
        ),
        sa.Column(
            "ip_address",
            sa.String(length=45),
            nullable=False,
            comment="Client IP address (IPv6 max length)",
        ),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column(
            "failure_reason",
            sa.String(length=100),
            nullable=True,
            comment="Why the attempt failed: invalid_password, user_not_found, ...",
        ),
        sa.Column("attempted_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_login_attempts_id", "login_attempts", ["id"], unique=False)
    op.create_index(
        "ix_login_attempts_username", "login_attempts", ["username"], unique=False
    )
    op.create_index(
        "ix_login_attempts_user_id", "login_attempts", ["user_id"], unique=False
    )
    op.create_index(
        "ix_login_attempts_attempted_at",
        "login_attempts",
        ["attempted_at"],
        unique=False,
    )
    op.create_index(
        "ix_login_attempts_username_success_attempted",
        "login_attempts",
        ["username", "success", "attempted_at"],
        unique=False,
    )

    op.create_table(
        "account_lockouts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("locked_at", sa.DateTime(), nullable=False),
        sa.Column(
            "locked_until",
            sa.DateTime(),
            nullable=False,
            comment="End of the lockout window",
        ),
        sa.Column(
            "attempt_count",
            sa.Integer(),
            nullable=False,
            server_default="0",
            comment="Failures in the window that triggered this lockout",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_account_lockouts_id", "account_lockouts", ["id"], unique=False)
    op.create_index(
        "ix_account_lockouts_username", "account_lockouts", ["username"], unique=False
    )
    op.create_index(
        "ix_account_lockouts_user_id", "account_lockouts", ["user_id"], unique=False
    )
    op.create_index(
        "ix_account_lockouts_username_active_until",
        "account_lockouts",
        ["username", "is_active", "locked_until"],
        unique=False,
    )

    for table in ("audit_logs", "user_activity_logs"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.Integer(), nullable=True),
            sa.Column("username", sa.String(length=150), nullable=True),
            sa.Column("action", sa.String(length=100), nullable=False),
            sa.Column("ip_address", sa.String(length=45), nullable=True),
            sa.Column("user_agent", sa.String(length=500), nullable=True),
            sa.Column("success", sa.Boolean(), nullable=False),
            sa.Column(
                "details",
                sa.Text(),
                nullable=True,
                comment="JSON with additional event details",
            ),
            sa.Column("timestamp", sa.DateTime(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_id", table, ["id"], unique=False)
        op.create_index(f"ix_{table}_timestamp", table, ["timestamp"], unique=False)

    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"], unique=False)
    op.create_index("ix_audit_logs_username", "audit_logs", ["username"], unique=False)
    op.create_index(
        "ix_audit_logs_action_timestamp",
        "audit_logs",
        ["action", "timestamp"],
        unique=False,
    )
    op.create_index(
        "ix_user_activity_logs_user_timestamp",
        "user_activity_logs",
        ["user_id", "timestamp"],
        unique=False,
    )

    op.create_table(
        "password_reset_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_password_reset_tokens_id", "password_reset_tokens", ["id"], unique=False
    )
    op.create_index(
        "ix_password_reset_tokens_user_id",
        "password_reset_tokens",
        ["user_id"],
        unique=False,
    )
    op.create_index(
        "ix_password_reset_tokens_token",
        "password_reset_tokens",
        ["token"],
        unique=True,
    )


def downgrade():
    op.drop_table("password_reset_tokens")
    op.drop_table("user_activity_logs")
    op.drop_table("audit_logs")
    op.drop_table("account_lockouts")
    op.drop_table("login_attempts")
    op.drop_table("users")
