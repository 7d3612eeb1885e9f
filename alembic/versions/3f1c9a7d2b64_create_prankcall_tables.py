"""create_prankcall_tables

Revision ID: 3f1c9a7d2b64
Revises:
Create Date: 2026-10-19 10:12:41.418203

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b64"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
            comment="Record creation timestamp",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
            comment="Record last update timestamp",
        ),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(length=255),
            nullable=False,
            comment="PBKDF2 salt$hash",
        ),
        sa.Column("credits", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("plan", sa.String(length=20), nullable=False, server_default="free"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column(
            "has_ever_purchased",
            sa.Boolean(),
            nullable=False,
            server_default="false",
            comment="Set once by the first settled checkout",
        ),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_calls", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "successful_calls", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "total_call_seconds",
            sa.Integer(),
            nullable=False,
            server_default="0",
            comment="Cumulative call duration",
        ),
        sa.Column("referral_code", sa.String(length=6), nullable=True),
        sa.Column("referred_by_id", sa.String(length=36), nullable=True),
        sa.Column(
            "referral_credits_earned",
            sa.Integer(),
            nullable=False,
            server_default="0",
        ),
        *_timestamps(),
        sa.CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
        sa.ForeignKeyConstraint(["referred_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(
        op.f("ix_users_referral_code"), "users", ["referral_code"], unique=True
    )
    op.create_index(
        op.f("ix_users_referred_by_id"), "users", ["referred_by_id"], unique=False
    )

    # Create scenarios table
    op.create_table(
        "scenarios",
        sa.Column("id", sa.String(length=100), nullable=False, comment="Slug"),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("user_description", sa.Text(), nullable=True),
        sa.Column("icon", sa.String(length=20), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column(
            "category", sa.String(length=20), nullable=False, server_default="Klassiek"
        ),
        sa.Column(
            "difficulty",
            sa.String(length=20),
            nullable=False,
            server_default="Gemiddeld",
        ),
        sa.Column(
            "duration_label",
            sa.String(length=20),
            nullable=False,
            server_default="2-5 min",
        ),
        sa.Column("script", sa.Text(), nullable=True),
        sa.Column("audio_url", sa.Text(), nullable=True),
        sa.Column(
            "audio_provider",
            sa.String(length=20),
            nullable=False,
            server_default="none",
        ),
        sa.Column("voice_id", sa.String(length=100), nullable=True),
        sa.Column(
            "agent_id",
            sa.String(length=255),
            nullable=True,
            comment="Provider assistant ID",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("popularity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("times_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("average_rating", sa.Float(), nullable=False, server_default="0"),
        sa.Column("success_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column(
            "created_by", sa.String(length=100), nullable=False, server_default="admin"
        ),
        sa.Column("tags", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_scenarios_active_public",
        "scenarios",
        ["is_active", "is_public"],
        unique=False,
    )
    op.create_index("idx_scenarios_category", "scenarios", ["category"], unique=False)
    op.create_index(
        op.f("ix_scenarios_agent_id"), "scenarios", ["agent_id"], unique=False
    )

    # Create calls table
    op.create_table(
        "calls",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("user_email", sa.String(length=255), nullable=True),
        sa.Column(
            "call_id", sa.String(length=255), nullable=False, comment="Provider call ID"
        ),
        sa.Column(
            "provider",
            sa.String(length=50),
            nullable=False,
            comment="Voice AI provider (vapi, etc.)",
        ),
        sa.Column(
            "target_phone",
            sa.String(length=32),
            nullable=False,
            comment="Phone number as entered",
        ),
        sa.Column(
            "formatted_phone",
            sa.String(length=32),
            nullable=False,
            comment="Phone number in +31 form",
        ),
        sa.Column("target_name", sa.String(length=100), nullable=True),
        sa.Column("scenario_id", sa.String(length=100), nullable=False),
        sa.Column("scenario_name", sa.String(length=200), nullable=False),
        sa.Column("scenario_icon", sa.String(length=20), nullable=True),
        sa.Column(
            "agent_id",
            sa.String(length=255),
            nullable=False,
            comment="Provider assistant ID",
        ),
        sa.Column(
            "status",
            sa.String(length=20),
            nullable=False,
            server_default="queued",
            comment="Current call status",
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "answered_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="First time the call was seen in-progress or forwarding",
        ),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "duration",
            sa.Integer(),
            nullable=False,
            server_default="0",
            comment="Duration in seconds",
        ),
        sa.Column(
            "provider_data",
            sa.JSON(),
            nullable=True,
            comment="Cost, transcript, end reason and quality flags from the provider",
        ),
        sa.Column(
            "recording_available",
            sa.Boolean(),
            nullable=False,
            server_default="false",
        ),
        sa.Column("recording_url", sa.Text(), nullable=True),
        sa.Column("recording_format", sa.String(length=10), nullable=True),
        sa.Column("recording_duration", sa.Float(), nullable=True),
        sa.Column("share_id", sa.String(length=32), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "allow_sharing", sa.Boolean(), nullable=False, server_default="true"
        ),
        sa.Column("share_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "share_platforms",
            sa.JSON(),
            nullable=True,
            comment="One entry per share action",
        ),
        sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_downloaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "was_successful", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("credits_used", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "credits_refunded",
            sa.Integer(),
            nullable=False,
            server_default="0",
            comment="Either 0 or credits_used",
        ),
        sa.Column("was_free", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column(
            "should_refund", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column(
            "refund_reason", sa.String(length=20), nullable=False, server_default="none"
        ),
        sa.Column("refunded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "settled_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Claimed atomically by the single settlement run",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_code", sa.String(length=50), nullable=True),
        sa.Column("error_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_calls_call_id"), "calls", ["call_id"], unique=True)
    op.create_index(op.f("ix_calls_share_id"), "calls", ["share_id"], unique=True)
    op.create_index(op.f("ix_calls_scenario_id"), "calls", ["scenario_id"], unique=False)
    op.create_index(op.f("ix_calls_status"), "calls", ["status"], unique=False)
    op.create_index(op.f("ix_calls_started_at"), "calls", ["started_at"], unique=False)
    op.create_index(
        "idx_calls_user_created", "calls", ["user_id", "created_at"], unique=False
    )
    op.create_index(
        "idx_calls_email_created", "calls", ["user_email", "created_at"], unique=False
    )

    # Create referral tables
    op.create_table(
        "referral_invites",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("referrer_id", sa.String(length=36), nullable=False),
        sa.Column("referred_user_id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column(
            "invited_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "credits_earned",
            sa.Integer(),
            nullable=False,
            server_default="0",
            comment="Credits paid to the referrer for this invite (0 or 1)",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("rewarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["referrer_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["referred_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("referred_user_id"),
    )
    op.create_index(
        op.f("ix_referral_invites_referrer_id"),
        "referral_invites",
        ["referrer_id"],
        unique=False,
    )

    op.create_table(
        "referral_milestones",
        sa.Column("id", sa.Integer(), nullable=False, autoincrement=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("milestone_type", sa.String(length=20), nullable=False),
        sa.Column("reward", sa.String(length=50), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column(
            "achieved_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "milestone_type", name="uq_milestone_per_user"),
    )
    op.create_index(
        op.f("ix_referral_milestones_user_id"),
        "referral_milestones",
        ["user_id"],
        unique=False,
    )

    # Create payment ledger
    op.create_table(
        "processed_payment_sessions",
        sa.Column(
            "session_id",
            sa.String(length=255),
            nullable=False,
            comment="Stripe checkout session ID",
        ),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("package_id", sa.String(length=50), nullable=True),
        sa.Column(
            "source", sa.String(length=20), nullable=False, comment="verify or webhook"
        ),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("session_id"),
    )
    op.create_index(
        op.f("ix_processed_payment_sessions_user_id"),
        "processed_payment_sessions",
        ["user_id"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(
        op.f("ix_processed_payment_sessions_user_id"),
        table_name="processed_payment_sessions",
    )
    op.drop_table("processed_payment_sessions")
    op.drop_index(
        op.f("ix_referral_milestones_user_id"), table_name="referral_milestones"
    )
    op.drop_table("referral_milestones")
    op.drop_index(op.f("ix_referral_invites_referrer_id"), table_name="referral_invites")
    op.drop_table("referral_invites")
    op.drop_index("idx_calls_email_created", table_name="calls")
    op.drop_index("idx_calls_user_created", table_name="calls")
    op.drop_index(op.f("ix_calls_started_at"), table_name="calls")
    op.drop_index(op.f("ix_calls_status"), table_name="calls")
    op.drop_index(op.f("ix_calls_scenario_id"), table_name="calls")
    op.drop_index(op.f("ix_calls_share_id"), table_name="calls")
    op.drop_index(op.f("ix_calls_call_id"), table_name="calls")
    op.drop_table("calls")
    op.drop_index(op.f("ix_scenarios_agent_id"), table_name="scenarios")
    op.drop_index("idx_scenarios_category", table_name="scenarios")
    op.drop_index("idx_scenarios_active_public", table_name="scenarios")
    op.drop_table("scenarios")
    op.drop_index(op.f("ix_users_referred_by_id"), table_name="users")
    op.drop_index(op.f("ix_users_referral_code"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
