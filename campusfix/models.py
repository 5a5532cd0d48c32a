"""SQLAlchemy ORM models for the issue workflow."""

import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import Boolean, DateTime, Integer


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Enums (stored as TEXT / INTEGER)
# ---------------------------------------------------------------------------


class UserRole(str, enum.Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


class IssueStatus(str, enum.Enum):
    PENDING_APPROVAL = "PENDING_APPROVAL"
    OPEN = "OPEN"
    IN_REVIEW = "IN_REVIEW"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"
    PENDING_REVALIDATION = "PENDING_REVALIDATION"
    RE_RESOLVED = "RE_RESOLVED"
    FINAL_CLOSED = "FINAL_CLOSED"


class IssueCategory(str, enum.Enum):
    ACADEMICS = "ACADEMICS"
    HOSTEL = "HOSTEL"
    INFRASTRUCTURE = "INFRASTRUCTURE"
    HARASSMENT = "HARASSMENT"
    ADMINISTRATION = "ADMINISTRATION"
    CAREER_PLACEMENTS = "CAREER_PLACEMENTS"
    DIGITAL_SERVICES = "DIGITAL_SERVICES"
    SPORTS_WELLNESS = "SPORTS_WELLNESS"
    FINANCIAL_SERVICES = "FINANCIAL_SERVICES"
    TRANSPORTATION = "TRANSPORTATION"
    OTHER = "OTHER"


class Urgency(enum.IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 5


class VoteType(str, enum.Enum):
    CONFIRM = "confirm"
    REJECT = "reject"


class ContestDecision(str, enum.Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


class TimelineEventType(str, enum.Enum):
    CREATED = "CREATED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    STATUS_CHANGE = "STATUS_CHANGE"
    SUPPORT = "SUPPORT"
    CONTEST = "CONTEST"
    REVALIDATION_VOTE = "REVALIDATION_VOTE"
    EVIDENCE_UPLOAD = "EVIDENCE_UPLOAD"
    ADMIN_UPDATE = "ADMIN_UPDATE"


class NotificationType(str, enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RESOLVED = "RESOLVED"
    CONTEST_RECEIVED = "CONTEST_RECEIVED"
    CONTEST_ESCALATED = "CONTEST_ESCALATED"
    CONTEST_ACCEPTED = "CONTEST_ACCEPTED"
    CONTEST_REJECTED = "CONTEST_REJECTED"
    RE_RESOLVED = "RE_RESOLVED"
    FINAL_CLOSED = "FINAL_CLOSED"
    REOPENED = "REOPENED"


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    performance_score: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("85")
    )


# ---------------------------------------------------------------------------
# Users (profiles)
# ---------------------------------------------------------------------------


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_email", "email"),
        CheckConstraint("role IN ('STUDENT','ADMIN')", name="ck_user_role"),
        CheckConstraint(
            "credibility >= 0 AND credibility <= 100", name="ck_user_credibility"
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    role: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'STUDENT'")
    )
    credibility: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("50")
    )
    department_id: Mapped[str | None] = mapped_column(
        Text, ForeignKey("departments.id")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Issues
# ---------------------------------------------------------------------------


class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (
        Index("idx_issues_status", "status"),
        Index("idx_issues_department", "department_id"),
        Index("idx_issues_creator", "creator_id"),
        Index("idx_issues_priority", "priority_score"),
        Index("idx_issues_contested_flag", "contested_flag"),
        CheckConstraint(
            "status IN ('PENDING_APPROVAL','OPEN','IN_REVIEW','RESOLVED','REJECTED',"
            "'PENDING_REVALIDATION','RE_RESOLVED','FINAL_CLOSED')",
            name="ck_issue_status",
        ),
        CheckConstraint("urgency IN (1,2,3,5)", name="ck_issue_urgency"),
        CheckConstraint("support_count >= 1", name="ck_issue_support_count"),
        CheckConstraint("contest_count >= 0", name="ck_issue_contest_count"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    department_id: Mapped[str] = mapped_column(
        Text, ForeignKey("departments.id"), nullable=False
    )
    creator_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    evidence_url: Mapped[str | None] = mapped_column(Text)

    # Workflow
    status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=text("'PENDING_APPROVAL'")
    )
    urgency: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Scoring
    priority_score: Mapped[float] = mapped_column(
        Float, nullable=False, server_default=text("0")
    )
    support_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )
    contest_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("0")
    )
    contest_round: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )

    # Dispute state
    contested_flag: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    contest_window_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    revalidation_window_end: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )
    resolution_summary: Mapped[str | None] = mapped_column(Text)
    resolution_evidence_url: Mapped[str | None] = mapped_column(Text)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Supports, Contests, Revalidation votes
# ---------------------------------------------------------------------------


class Support(Base):
    __tablename__ = "supports"
    __table_args__ = (
        UniqueConstraint("user_id", "issue_id", name="uq_support_user_issue"),
        Index("idx_supports_issue", "issue_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


class Contest(Base):
    __tablename__ = "contests"
    __table_args__ = (
        UniqueConstraint("issue_id", "user_id", name="uq_contest_issue_user"),
        Index("idx_contests_issue_round", "issue_id", "round"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    round: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


class RevalidationVote(Base):
    __tablename__ = "revalidation_votes"
    __table_args__ = (
        UniqueConstraint("issue_id", "user_id", name="uq_revalidation_vote_issue_user"),
        Index("idx_revalidation_votes_issue", "issue_id"),
        CheckConstraint("vote_type IN ('confirm','reject')", name="ck_vote_type"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    vote_type: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Issue collections (append-only)
# ---------------------------------------------------------------------------


class TimelineEvent(Base):
    __tablename__ = "timeline_events"
    __table_args__ = (Index("idx_timeline_issue_created", "issue_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    event_type: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (Index("idx_comments_issue_created", "issue_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column("text", Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


class Proposal(Base):
    __tablename__ = "proposals"
    __table_args__ = (Index("idx_proposals_issue", "issue_id"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    user_name: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column("text", Text, nullable=False)
    votes: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "read_at"),
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    issue_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("issues.id", ondelete="CASCADE"), nullable=False
    )
    notification_type: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )


# ---------------------------------------------------------------------------
# Credibility log
# ---------------------------------------------------------------------------


class CredibilityLog(Base):
    __tablename__ = "credibility_log"
    __table_args__ = (
        UniqueConstraint("user_id", "issue_id", "rule", name="uq_credibility_rule_once"),
        Index("idx_credlog_user", "user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    issue_id: Mapped[UUID | None] = mapped_column(Uuid, ForeignKey("issues.id"))
    rule: Mapped[str] = mapped_column(Text, nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    credibility_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
