"""Initial schema: departments, users, issues and the issue ledgers.

Revision ID: 001
Revises:
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")
    )


def _issue_fk(ondelete: str | None = "CASCADE") -> sa.Column:
    return sa.Column(
        "issue_id", UUID(as_uuid=True), sa.ForeignKey("issues.id", ondelete=ondelete), nullable=False
    )


def upgrade() -> None:
    # --- Departments ---
    op.create_table(
        "departments",
        sa.Column("id", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("performance_score", sa.Integer(), nullable=False, server_default=sa.text("85")),
    )

    # --- Users ---
    op.create_table(
        "users",
        _id_column(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("role", sa.Text(), nullable=False, server_default=sa.text("'STUDENT'")),
        sa.Column("credibility", sa.Integer(), nullable=False, server_default=sa.text("50")),
        sa.Column("department_id", sa.Text(), sa.ForeignKey("departments.id")),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("role IN ('STUDENT','ADMIN')", name="ck_user_role"),
        sa.CheckConstraint("credibility >= 0 AND credibility <= 100", name="ck_user_credibility"),
    )
    op.create_index("idx_users_email", "users", ["email"])

    # --- Issues ---
    op.create_table(
        "issues",
        _id_column(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("department_id", sa.Text(), sa.ForeignKey("departments.id"), nullable=False),
        sa.Column("creator_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("evidence_url", sa.Text()),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'PENDING_APPROVAL'")),
        sa.Column("urgency", sa.Integer(), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("priority_score", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("support_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("contest_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("contest_round", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("contested_flag", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("contest_window_end", sa.DateTime(timezone=True)),
        sa.Column("revalidation_window_end", sa.DateTime(timezone=True)),
        sa.Column("resolution_summary", sa.Text()),
        sa.Column("resolution_evidence_url", sa.Text()),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('PENDING_APPROVAL','OPEN','IN_REVIEW','RESOLVED','REJECTED',"
            "'PENDING_REVALIDATION','RE_RESOLVED','FINAL_CLOSED')",
            name="ck_issue_status",
        ),
        sa.CheckConstraint("urgency IN (1,2,3,5)", name="ck_issue_urgency"),
        sa.CheckConstraint("support_count >= 1", name="ck_issue_support_count"),
        sa.CheckConstraint("contest_count >= 0", name="ck_issue_contest_count"),
    )
    op.create_index("idx_issues_status", "issues", ["status"])
    op.create_index("idx_issues_department", "issues", ["department_id"])
    op.create_index("idx_issues_creator", "issues", ["creator_id"])
    op.create_index("idx_issues_priority", "issues", ["priority_score"])
    op.create_index("idx_issues_contested_flag", "issues", ["contested_flag"])

    # --- Supports ---
    op.create_table(
        "supports",
        _id_column(),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _issue_fk(),
        _created_at(),
        sa.UniqueConstraint("user_id", "issue_id", name="uq_support_user_issue"),
    )
    op.create_index("idx_supports_issue", "supports", ["issue_id"])

    # --- Contests ---
    op.create_table(
        "contests",
        _id_column(),
        _issue_fk(),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("round", sa.Integer(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("issue_id", "user_id", name="uq_contest_issue_user"),
    )
    op.create_index("idx_contests_issue_round", "contests", ["issue_id", "round"])

    # --- Revalidation votes ---
    op.create_table(
        "revalidation_votes",
        _id_column(),
        _issue_fk(),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vote_type", sa.Text(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("issue_id", "user_id", name="uq_revalidation_vote_issue_user"),
        sa.CheckConstraint("vote_type IN ('confirm','reject')", name="ck_vote_type"),
    )
    op.create_index("idx_revalidation_votes_issue", "revalidation_votes", ["issue_id"])

    # --- Timeline, comments, proposals ---
    op.create_table(
        "timeline_events",
        _id_column(),
        _issue_fk(),
        sa.Column("event_type", sa.Text(), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("metadata", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        _created_at(),
    )
    op.create_index("idx_timeline_issue_created", "timeline_events", ["issue_id", "created_at"])

    op.create_table(
        "comments",
        _id_column(),
        _issue_fk(),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("idx_comments_issue_created", "comments", ["issue_id", "created_at"])

    op.create_table(
        "proposals",
        _id_column(),
        _issue_fk(),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_name", sa.Text(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("votes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _created_at(),
    )
    op.create_index("idx_proposals_issue", "proposals", ["issue_id"])

    # --- Notifications ---
    op.create_table(
        "notifications",
        _id_column(),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _issue_fk(),
        sa.Column("notification_type", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        _created_at(),
    )
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "read_at"])
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])

    # --- Credibility log ---
    op.create_table(
        "credibility_log",
        _id_column(),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("issue_id", UUID(as_uuid=True), sa.ForeignKey("issues.id")),
        sa.Column("rule", sa.Text(), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("credibility_after", sa.Integer(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("user_id", "issue_id", "rule", name="uq_credibility_rule_once"),
    )
    op.create_index("idx_credlog_user", "credibility_log", ["user_id"])


def downgrade() -> None:
    for table in (
        "credibility_log",
        "notifications",
        "proposals",
        "comments",
        "timeline_events",
        "revalidation_votes",
        "contests",
        "supports",
        "issues",
        "users",
        "departments",
    ):
        op.drop_table(table)
