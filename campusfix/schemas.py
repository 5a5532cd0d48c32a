"""Pydantic v2 request/response schemas for all endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from campusfix.models import (
    ContestDecision,
    IssueCategory,
    IssueStatus,
    Urgency,
    VoteType,
)


# ---------------------------------------------------------------------------
# Issue requests
# ---------------------------------------------------------------------------


class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    category: IssueCategory
    department_id: str | None = Field(default=None, max_length=50)
    urgency: Urgency = Urgency.MEDIUM
    deadline: datetime | None = None
    evidence_url: str | None = Field(default=None, max_length=2048)

    @field_validator("urgency", mode="before")
    @classmethod
    def urgency_by_name(cls, value):
        if isinstance(value, str) and value.upper() in Urgency.__members__:
            return Urgency[value.upper()]
        return value


class IssueReject(BaseModel):
    reason: str | None = Field(default=None, max_length=2000)
    mark_fake: bool = False


class IssueResolve(BaseModel):
    summary: str = Field(..., min_length=1, max_length=5000)
    evidence_url: str | None = Field(default=None, max_length=2048)


class ContestCreate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ContestDecisionRequest(BaseModel):
    decision: ContestDecision
    explanation: str | None = Field(default=None, max_length=2000)
    malicious: bool = False


class RevalidationVoteRequest(BaseModel):
    vote_type: VoteType = Field(validation_alias=AliasChoices("vote_type", "voteType", "vote"))


class IssueFieldUpdate(BaseModel):
    """Admin partial update. Only the listed fields exist; anything else is rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    status: IssueStatus | None = None
    priority_score: float | None = Field(default=None, ge=0, alias="priorityScore")
    support_count: int | None = Field(default=None, ge=1, alias="supportCount")
    contest_count: int | None = Field(default=None, ge=0, alias="contestCount")
    resolution_evidence_url: str | None = Field(
        default=None, max_length=2048, alias="resolutionEvidenceUrl"
    )


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class ProposalCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


# ---------------------------------------------------------------------------
# Issue responses
# ---------------------------------------------------------------------------


class IssueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    category: str
    department_id: str
    creator_id: UUID
    evidence_url: str | None
    status: str
    urgency: int
    deadline: datetime
    priority_score: float
    support_count: int
    contest_count: int
    contested_flag: bool
    contest_window_end: datetime | None
    revalidation_window_end: datetime | None
    resolution_summary: str | None
    resolution_evidence_url: str | None
    resolved_at: datetime | None
    version: int
    created_at: datetime
    updated_at: datetime


class TimelineEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    event_type: str
    user_id: UUID
    user_name: str
    description: str
    metadata: dict = Field(default_factory=dict, validation_alias="metadata_")
    created_at: datetime


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    user_name: str
    text: str = Field(validation_alias="content")
    created_at: datetime


class ProposalResponse(CommentResponse):
    votes: int


class IssueDetailResponse(IssueResponse):
    supported_by_me: bool = False
    timeline: list[TimelineEventResponse] = Field(default_factory=list)
    comments: list[CommentResponse] = Field(default_factory=list)
    proposals: list[ProposalResponse] = Field(default_factory=list)


class IssueListResponse(BaseModel):
    items: list[IssueResponse]
    total: int
    limit: int
    offset: int


class VoteTallyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    confirms: int
    rejects: int
    threshold: int
    window_end: datetime | None
    decided: bool


# ---------------------------------------------------------------------------
# Users & credibility
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: str
    credibility: int
    department_id: str | None


class PublicUserResponse(BaseModel):
    """Directory entry with identifying details withheld."""

    id: UUID
    name: str = "Anonymous"
    role: str
    credibility: int
    department_id: str | None
    is_me: bool = False


class SupportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    issue_id: UUID


class CredibilityLogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    issue_id: UUID | None
    rule: str
    delta: int
    credibility_after: int
    created_at: datetime


# ---------------------------------------------------------------------------
# Departments & metrics
# ---------------------------------------------------------------------------


class DepartmentMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    department_id: str
    name: str
    total_issues: int
    resolved_issues: int
    overdue_issues: int
    contested_issues: int
    avg_resolution_days: float
    deadline_adherence: int
    contest_rate: int
    resolution_rate: int
    performance_score: int


class SystemMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_issues: int
    open_issues: int
    resolved_issues: int
    overdue_issues: int
    contested_issues: int
    avg_backlog_age_days: float
    overdue_percentage: int
    resolution_rate: int


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    issue_id: UUID
    notification_type: str
    message: str
    read_at: datetime | None
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    unread_count: int
