"""Service layer for the issue lifecycle.

Every operation evaluates its guards in the same order: authorization (from
the actor alone, before anything is read), input validation, existence,
state, window, uniqueness, and only then writes. Writes are staged on the
unit of work; the caller commits.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import pydantic

from campusfix.auth import Actor
from campusfix.config import CampusFixSettings, get_settings
from campusfix.datetime_utils import ensure_utc, utcnow
from campusfix.exceptions import (
    AlreadyActedError,
    AuthorizationError,
    InsufficientCredibilityError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from campusfix.logging_config import get_logger
from campusfix.models import (
    Comment,
    ContestDecision,
    Issue,
    IssueCategory,
    IssueStatus,
    NotificationType,
    Proposal,
    TimelineEvent,
    TimelineEventType,
    Urgency,
    UserRole,
    VoteType,
)
from campusfix.repositories.base import validate_pagination
from campusfix.schemas import IssueFieldUpdate
from campusfix.services import contest_service, credibility_service, support_service
from campusfix.services.contest_service import CONTEST_WINDOW, REVALIDATION_WINDOW, VoteTally
from campusfix.services.credibility_service import CredibilityRule
from campusfix.services.notification_service import notify_creator
from campusfix.services.priority_service import (
    calculate_deadline,
    compute_priority_score,
    default_department,
    display_score,
)
from campusfix.state_machine import (
    CONTESTABLE_STATUSES,
    derive_contested_flag,
    is_terminal,
    manual_trigger_for,
    next_status,
)

logger = get_logger(__name__)

S = IssueStatus
EventType = TimelineEventType


@dataclass(frozen=True)
class RankedIssue:
    issue: Issue
    score: float


@dataclass(frozen=True)
class IssueDetail:
    issue: Issue
    score: float
    timeline: list[TimelineEvent]
    comments: list[Comment]
    proposals: list[Proposal]


def _require_role(actor: Actor, role: UserRole, action: str) -> None:
    if actor.role != role.value:
        raise AuthorizationError(action, role.value)


def _require_text(value: str | None, field: str, label: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{label} is required", field=field)
    return value.strip()


def _parse_enum(enum_class, value, field: str):
    try:
        return enum_class(value)
    except ValueError:
        allowed = ", ".join(str(m.value) for m in enum_class)
        raise ValidationError(f"Invalid {field} '{value}' (expected one of: {allowed})", field=field)


class IssueService:
    """Handles the issue lifecycle: submission through final closure."""

    def __init__(
        self,
        uow,
        clock: Callable[[], datetime] = utcnow,
        settings: CampusFixSettings | None = None,
    ):
        self.uow = uow
        self.clock = clock
        self.settings = settings or get_settings()

    # ==========================================
    # HELPERS
    # ==========================================

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    async def _record(
        self,
        issue: Issue,
        actor: Actor,
        event_type: TimelineEventType,
        description: str,
        now: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        await self.uow.timeline.append(
            issue_id=issue.id,
            event_type=event_type.value,
            user_id=actor.id,
            user_name=actor.name,
            description=description,
            created_at=now,
            metadata=metadata,
        )

    async def _transition(
        self,
        actor: Actor,
        issue: Issue,
        trigger: str,
        now: datetime,
        event_type: TimelineEventType,
        description: str,
        **values,
    ) -> Issue:
        """Fire a trigger with an optimistic write on the issue's version."""
        previous = issue.status
        target = next_status(previous, trigger)
        contest_count = values.get("contest_count", issue.contest_count)
        values["contested_flag"] = derive_contested_flag(target, contest_count)

        issue = await self.uow.issues.compare_and_set(
            issue, issue.version, now, status=target, **values
        )
        await self._record(
            issue, actor, event_type, description, now,
            {"from": previous, "to": target, "trigger": trigger},
        )
        logger.info(
            "issue_transitioned",
            issue_id=str(issue.id),
            trigger=trigger,
            from_status=previous,
            to_status=target,
            actor_id=str(actor.id),
        )
        return issue

    def _window_end(self, now: datetime) -> datetime:
        return contest_service.window_end(now, self.settings.window_days)

    # ==========================================
    # SUBMISSION
    # ==========================================

    async def submit_issue(
        self,
        actor: Actor,
        title: str,
        description: str,
        category: str,
        department_id: str | None,
        urgency: int,
        deadline: datetime | None = None,
        evidence_url: str | None = None,
    ) -> Issue:
        """Create an issue in PENDING_APPROVAL, auto-supported by its creator."""
        _require_role(actor, UserRole.STUDENT, "submit issues")

        title = _require_text(title, "title", "Title")
        description = _require_text(description, "description", "Description")
        category = _parse_enum(IssueCategory, category, "category").value
        urgency = int(_parse_enum(Urgency, urgency, "urgency"))
        department_id = department_id or default_department(category)

        if await self.uow.departments.get_by_id(department_id) is None:
            raise NotFoundError("Department", department_id)

        now = self._now()
        deadline = ensure_utc(deadline) if deadline else calculate_deadline(category, urgency, now)

        issue = Issue(
            id=uuid4(),
            title=title,
            description=description,
            category=category,
            department_id=department_id,
            creator_id=actor.id,
            evidence_url=evidence_url,
            status=S.PENDING_APPROVAL.value,
            urgency=urgency,
            deadline=deadline,
            priority_score=compute_priority_score([actor.credibility], urgency, now, now),
            support_count=1,
            contest_count=0,
            contest_round=1,
            contested_flag=False,
            version=1,
            created_at=now,
            updated_at=now,
        )
        await self.uow.issues.add(issue)
        await self.uow.supports.create(actor.id, issue.id)
        await self._record(issue, actor, EventType.CREATED, "Issue reported", now)

        logger.info(
            "issue_submitted",
            issue_id=str(issue.id),
            creator_id=str(actor.id),
            category=category,
            department_id=department_id,
            urgency=urgency,
        )
        return issue

    # ==========================================
    # ADMIN TRIAGE
    # ==========================================

    async def approve_issue(self, actor: Actor, issue_id: UUID | str) -> Issue:
        _require_role(actor, UserRole.ADMIN, "approve issues")
        issue = await self.uow.issues.get_required(issue_id)
        now = self._now()

        issue = await self._transition(
            actor, issue, "approve", now, EventType.APPROVED, "Issue approved by administration"
        )
        await notify_creator(self.uow, issue, NotificationType.APPROVED, now)
        return issue

    async def reject_issue(
        self,
        actor: Actor,
        issue_id: UUID | str,
        reason: str | None = None,
        mark_fake: bool = False,
    ) -> Issue:
        """Reject a pending issue, opening the contest window.

        ``mark_fake`` applies the fake-report penalty to the creator.
        """
        _require_role(actor, UserRole.ADMIN, "reject issues")
        issue = await self.uow.issues.get_required(issue_id)
        now = self._now()
        reason = reason.strip() if reason and reason.strip() else None

        issue = await self._transition(
            actor, issue, "reject", now, EventType.REJECTED,
            f"Issue rejected: {reason}" if reason else "Issue rejected",
            contest_window_end=self._window_end(now),
        )
        if mark_fake:
            await credibility_service.apply_rule(
                self.uow, issue.creator_id, issue.id, CredibilityRule.FAKE_REPORT_PENALTY
            )
        await notify_creator(self.uow, issue, NotificationType.REJECTED, now, reason=reason)
        return issue

    async def start_review(self, actor: Actor, issue_id: UUID | str) -> Issue:
        _require_role(actor, UserRole.ADMIN, "start reviewing issues")
        issue = await self.uow.issues.get_required(issue_id)
        return await self._transition(
            actor, issue, "start_review", self._now(), EventType.STATUS_CHANGE,
            "Issue moved to review",
        )

    async def return_to_open(self, actor: Actor, issue_id: UUID | str) -> Issue:
        _require_role(actor, UserRole.ADMIN, "return issues to open")
        issue = await self.uow.issues.get_required(issue_id)
        return await self._transition(
            actor, issue, "return_to_open", self._now(), EventType.STATUS_CHANGE,
            "Issue returned to open",
        )

    # ==========================================
    # RESOLUTION
    # ==========================================

    async def resolve_issue(
        self,
        actor: Actor,
        issue_id: UUID | str,
        summary: str,
        evidence_url: str | None = None,
    ) -> Issue:
        """Resolve an open or in-review issue and open the contest window."""
        _require_role(actor, UserRole.ADMIN, "resolve issues")
        summary = _require_text(summary, "summary", "Resolution summary")
        issue = await self.uow.issues.get_required(issue_id)
        now = self._now()

        issue = await self._transition(
            actor, issue, "resolve", now, EventType.STATUS_CHANGE, f"Issue resolved: {summary}",
            resolution_summary=summary,
            resolution_evidence_url=evidence_url,
            resolved_at=now,
            contest_window_end=self._window_end(now),
        )
        await credibility_service.reward_resolution(self.uow, issue)
        await notify_creator(self.uow, issue, NotificationType.RESOLVED, now)
        return issue

    async def re_resolve_issue(
        self,
        actor: Actor,
        issue_id: UUID | str,
        summary: str,
        evidence_url: str | None = None,
    ) -> Issue:
        """Publish a new resolution for an escalated issue and open the revalidation window."""
        _require_role(actor, UserRole.ADMIN, "re-resolve issues")
        summary = _require_text(summary, "summary", "Resolution summary")
        issue = await self.uow.issues.get_required(issue_id)
        now = self._now()

        issue = await self._transition(
            actor, issue, "re_resolve", now, EventType.STATUS_CHANGE,
            f"Issue re-resolved: {summary}",
            resolution_summary=summary,
            resolution_evidence_url=evidence_url,
            resolved_at=now,
            revalidation_window_end=self._window_end(now),
        )
        await credibility_service.reward_resolution(self.uow, issue)
        await notify_creator(self.uow, issue, NotificationType.RE_RESOLVED, now)
        return issue

    # ==========================================
    # SUPPORT
    # ==========================================

    async def support_issue(self, actor: Actor, issue_id: UUID | str) -> Issue:
        return await support_service.add_support(self.uow, actor, issue_id, self._now())

    # ==========================================
    # CONTESTS
    # ==========================================

    async def contest_issue(self, actor: Actor, issue_id: UUID | str, reason: str) -> Issue:
        """
        File a contest against a resolution or rejection.

        The third distinct contest in a round escalates the issue to
        PENDING_REVALIDATION in the same transaction.
        """
        _require_role(actor, UserRole.STUDENT, "contest issues")
        minimum = self.settings.min_credibility_to_contest
        if actor.credibility < minimum:
            raise InsufficientCredibilityError("contest issues", minimum, actor.credibility)
        reason = _require_text(reason, "reason", "Contest reason")

        issue = await self.uow.issues.get_required(issue_id)
        if issue.status not in CONTESTABLE_STATUSES:
            raise InvalidStateError(issue.status, "contest", sorted(CONTESTABLE_STATUSES))
        now = self._now()
        contest_service.ensure_window_open(CONTEST_WINDOW, issue.contest_window_end, now)
        if await self.uow.contests.exists(issue.id, actor.id):
            raise AlreadyActedError(str(issue.id), "contested")

        await self.uow.contests.create(issue.id, actor.id, reason, issue.contest_round)
        contest_count, _ = await self.uow.issues.increment_contest_count(issue.id, now)
        await self._record(
            issue, actor, EventType.CONTEST, f"Outcome contested: {reason}", now,
            {"contest_count": contest_count, "round": issue.contest_round},
        )
        issue = await self.uow.issues.reload(issue)
        threshold = self.settings.contest_threshold
        await notify_creator(
            self.uow, issue, NotificationType.CONTEST_RECEIVED, now,
            count=contest_count, threshold=threshold,
        )
        logger.info(
            "contest_filed",
            issue_id=str(issue.id),
            user_id=str(actor.id),
            contest_count=contest_count,
            round=issue.contest_round,
        )

        if contest_service.should_escalate(contest_count, threshold):
            issue = await self._transition(
                actor, issue, "escalate", now, EventType.STATUS_CHANGE,
                f"Escalated for revalidation after {contest_count} contests",
            )
            await notify_creator(self.uow, issue, NotificationType.CONTEST_ESCALATED, now)
            logger.info("issue_escalated", issue_id=str(issue.id), contest_count=contest_count)
        return issue

    async def contest_decision(
        self,
        actor: Actor,
        issue_id: UUID | str,
        decision: str,
        explanation: str | None = None,
        malicious: bool = False,
    ) -> Issue:
        """
        Decide an escalated contest.

        ACCEPT reopens the issue. REJECT dismisses the contests: the count is
        reset, a new contest round starts and the issue stays in
        PENDING_REVALIDATION until it is re-resolved. ``malicious`` penalizes
        every contester of the dismissed round.
        """
        _require_role(actor, UserRole.ADMIN, "decide contests")
        decision = _parse_enum(ContestDecision, decision, "decision")
        if malicious and decision is ContestDecision.ACCEPT:
            raise ValidationError(
                "Only a dismissed contest can be marked malicious", field="malicious"
            )
        explanation = explanation.strip() if explanation and explanation.strip() else None

        issue = await self.uow.issues.get_required(issue_id)
        now = self._now()
        dismissed_round = issue.contest_round
        reset = {"contest_count": 0, "contest_round": dismissed_round + 1}

        if decision is ContestDecision.ACCEPT:
            issue = await self._transition(
                actor, issue, "accept_contest", now, EventType.STATUS_CHANGE,
                "Contest accepted; issue reopened",
                contest_window_end=None,
                revalidation_window_end=None,
                **reset,
            )
            await notify_creator(
                self.uow, issue, NotificationType.CONTEST_ACCEPTED, now, reason=explanation
            )
            return issue

        issue = await self._transition(
            actor, issue, "dismiss_contest", now, EventType.STATUS_CHANGE,
            f"Contest dismissed: {explanation}" if explanation else "Contest dismissed",
            **reset,
        )
        if malicious:
            for contester_id in await self.uow.contests.contester_ids(issue.id, dismissed_round):
                await credibility_service.apply_rule(
                    self.uow, contester_id, issue.id, CredibilityRule.MALICIOUS_CONTEST_PENALTY
                )
        await notify_creator(
            self.uow, issue, NotificationType.CONTEST_REJECTED, now, reason=explanation
        )
        return issue

    # ==========================================
    # REVALIDATION
    # ==========================================

    async def revalidation_vote(
        self, actor: Actor, issue_id: UUID | str, vote_type: str
    ) -> Issue:
        """
        Cast a confirm/reject vote on a re-resolution.

        Three confirms close the issue for good; otherwise three rejects
        reopen it and clear the round's votes.
        """
        _require_role(actor, UserRole.STUDENT, "vote on revalidations")
        vote_type = _parse_enum(VoteType, vote_type, "vote_type")

        issue = await self.uow.issues.get_required(issue_id)
        if issue.status != S.RE_RESOLVED.value:
            raise InvalidStateError(issue.status, "vote on", [S.RE_RESOLVED.value])
        now = self._now()
        contest_service.ensure_window_open(
            REVALIDATION_WINDOW, issue.revalidation_window_end, now
        )
        if await self.uow.votes.exists(issue.id, actor.id):
            raise AlreadyActedError(str(issue.id), "voted on")

        await self.uow.votes.create(issue.id, actor.id, vote_type.value)
        # Claim the issue so concurrent votes are tallied one at a time
        issue = await self.uow.issues.compare_and_set(issue, issue.version, now)
        await self._record(
            issue, actor, EventType.REVALIDATION_VOTE, f"Voted to {vote_type.value}", now,
            {"vote_type": vote_type.value},
        )

        tally = contest_service.tally_votes(
            await self.uow.votes.vote_types(issue.id),
            self.settings.revalidation_threshold,
            issue.revalidation_window_end,
        )
        logger.info(
            "revalidation_vote_cast",
            issue_id=str(issue.id),
            user_id=str(actor.id),
            vote_type=vote_type.value,
            confirms=tally.confirms,
            rejects=tally.rejects,
        )

        if tally.outcome is VoteType.CONFIRM:
            issue = await self._transition(
                actor, issue, "confirm_revalidation", now, EventType.STATUS_CHANGE,
                "Resolution confirmed by revalidation; issue closed",
            )
            await notify_creator(self.uow, issue, NotificationType.FINAL_CLOSED, now)
        elif tally.outcome is VoteType.REJECT:
            issue = await self._transition(
                actor, issue, "reject_revalidation", now, EventType.STATUS_CHANGE,
                "Resolution rejected by revalidation; issue reopened",
                contest_count=0,
                contest_round=issue.contest_round + 1,
                contest_window_end=None,
                revalidation_window_end=None,
            )
            cleared = await self.uow.votes.clear(issue.id)
            logger.info("revalidation_votes_cleared", issue_id=str(issue.id), cleared=cleared)
            await notify_creator(self.uow, issue, NotificationType.REOPENED, now)
        return issue

    # ==========================================
    # ADMIN FIELD UPDATES
    # ==========================================

    async def update_issue_fields(
        self,
        actor: Actor,
        issue_id: UUID | str,
        fields: IssueFieldUpdate | dict[str, Any],
    ) -> Issue:
        """
        Apply an admin partial update.

        A status change must be a manual edge (OPEN <-> IN_REVIEW). Counters
        are derived from their ledgers and may only be set to the derived
        value.
        """
        _require_role(actor, UserRole.ADMIN, "update issue fields")
        if not isinstance(fields, IssueFieldUpdate):
            try:
                fields = IssueFieldUpdate.model_validate(fields)
            except pydantic.ValidationError as e:
                error = e.errors()[0]
                field = ".".join(str(part) for part in error["loc"])
                raise ValidationError(
                    f"Invalid issue update field '{field}': {error['msg']}", field=field
                ) from e

        provided = fields.model_dump(exclude_unset=True)
        if not provided:
            raise ValidationError("No fields to update")

        issue = await self.uow.issues.get_required(issue_id)
        values: dict[str, Any] = {}

        if "status" in provided and provided["status"] is not None:
            target = provided["status"].value
            if target != issue.status:
                manual_trigger_for(issue.status, target)
                values["status"] = target
                values["contested_flag"] = derive_contested_flag(target, issue.contest_count)

        if provided.get("support_count") is not None:
            actual = await self.uow.supports.count_for_issue(issue.id)
            if provided["support_count"] != actual:
                raise ValidationError(
                    f"supportCount is derived from supports and must be {actual}",
                    field="supportCount",
                )
            values["support_count"] = actual

        if provided.get("contest_count") is not None:
            actual = await self.uow.contests.count_for_round(issue.id, issue.contest_round)
            if provided["contest_count"] != actual:
                raise ValidationError(
                    f"contestCount is derived from contests and must be {actual}",
                    field="contestCount",
                )
            values["contest_count"] = actual

        if provided.get("priority_score") is not None:
            values["priority_score"] = provided["priority_score"]

        if "resolution_evidence_url" in provided:
            values["resolution_evidence_url"] = provided["resolution_evidence_url"]

        now = self._now()
        previous_status = issue.status
        issue = await self.uow.issues.compare_and_set(issue, issue.version, now, **values)
        await self._record(
            issue, actor, EventType.ADMIN_UPDATE, "Issue fields updated by administration", now,
            {"fields": sorted(provided), "from_status": previous_status, "to_status": issue.status},
        )
        logger.info(
            "issue_fields_updated",
            issue_id=str(issue.id),
            actor_id=str(actor.id),
            fields=sorted(provided),
        )
        return issue

    # ==========================================
    # DISCUSSION
    # ==========================================

    async def add_comment(self, actor: Actor, issue_id: UUID | str, text: str) -> Comment:
        text = _require_text(text, "text", "Comment text")
        issue = await self.uow.issues.get_required(issue_id)
        comment = await self.uow.comments.append(
            issue_id=issue.id,
            user_id=actor.id,
            user_name=actor.name,
            content=text,
            created_at=self._now(),
        )
        logger.info("comment_added", issue_id=str(issue.id), user_id=str(actor.id))
        return comment

    async def add_proposal(self, actor: Actor, issue_id: UUID | str, text: str) -> Proposal:
        text = _require_text(text, "text", "Proposal text")
        issue = await self.uow.issues.get_required(issue_id)
        if is_terminal(issue.status):
            raise InvalidStateError(issue.status, "propose a solution for")
        proposal = await self.uow.proposals.append(
            issue_id=issue.id,
            user_id=actor.id,
            user_name=actor.name,
            content=text,
            created_at=self._now(),
        )
        logger.info("proposal_added", issue_id=str(issue.id), user_id=str(actor.id))
        return proposal

    # ==========================================
    # READS
    # ==========================================

    async def score(self, issue: Issue) -> float:
        """Read-time priority score, the authoritative ranking value."""
        credibilities = await self.uow.supports.supporter_credibilities(issue.id)
        return display_score(issue, credibilities, self._now())

    async def get_issue(self, issue_id: UUID | str) -> IssueDetail:
        issue = await self.uow.issues.get_required(issue_id)
        return IssueDetail(
            issue=issue,
            score=await self.score(issue),
            timeline=await self.uow.timeline.list_for_issue(issue.id),
            comments=await self.uow.comments.list_for_issue(issue.id),
            proposals=await self.uow.proposals.list_for_issue(issue.id),
        )

    async def list_issues(
        self,
        status: str | None = None,
        department_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[RankedIssue], int]:
        """List issues ranked by read-time priority score, highest first."""
        limit, offset = validate_pagination(limit, offset)
        if status is not None:
            status = _parse_enum(IssueStatus, status, "status").value

        now = self._now()
        rows = await self.uow.issues.list_ranked(
            now, status=status, department_id=department_id, limit=limit, offset=offset
        )
        total = await self.uow.issues.count(status=status, department_id=department_id)
        ranked = [
            RankedIssue(issue=issue, score=display_score(issue, [support_total], now))
            for issue, support_total in rows
        ]
        return ranked, total

    async def vote_tally(self, issue_id: UUID | str) -> VoteTally:
        issue = await self.uow.issues.get_required(issue_id)
        return contest_service.tally_votes(
            await self.uow.votes.vote_types(issue.id),
            self.settings.revalidation_threshold,
            issue.revalidation_window_end,
        )
