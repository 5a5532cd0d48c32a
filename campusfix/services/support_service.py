"""Support ledger: one endorsement per user per issue, feeding the priority score."""

from datetime import datetime
from uuid import UUID

from campusfix.exceptions import AuthorizationError, DuplicateSupportError, InvalidStateError
from campusfix.logging_config import get_logger
from campusfix.models import Issue, TimelineEventType, UserRole
from campusfix.services.priority_service import display_score
from campusfix.state_machine import SUPPORTABLE_STATUSES

logger = get_logger(__name__)


async def refresh_priority_score(uow, issue: Issue, now: datetime) -> float:
    """Recompute and store the cached priority score from current supporters."""
    credibilities = await uow.supports.supporter_credibilities(issue.id)
    score = display_score(issue, credibilities, now)
    await uow.issues.set_priority_score(issue.id, score)
    return score


async def add_support(uow, actor, issue_id: UUID | str, now: datetime) -> Issue:
    """
    Record a student's support for an issue.

    Inserts the Support row, bumps supportCount, refreshes the cached
    priority score and appends a SUPPORT timeline event. All of it is staged
    on ``uow``; nothing is visible until the caller commits.
    """
    if actor.role != UserRole.STUDENT.value:
        raise AuthorizationError("support issues", UserRole.STUDENT.value)
    issue = await uow.issues.get_required(issue_id)
    if issue.status not in SUPPORTABLE_STATUSES:
        raise InvalidStateError(issue.status, "support", sorted(SUPPORTABLE_STATUSES))
    if await uow.supports.exists(actor.id, issue.id):
        raise DuplicateSupportError(str(issue.id))

    await uow.supports.create(actor.id, issue.id)
    support_count = await uow.issues.increment_support_count(issue.id, now)
    score = await refresh_priority_score(uow, issue, now)

    await uow.timeline.append(
        issue_id=issue.id,
        event_type=TimelineEventType.SUPPORT.value,
        user_id=actor.id,
        user_name=actor.name,
        description=f"{actor.name} supported this issue",
        created_at=now,
        metadata={"support_count": support_count},
    )

    logger.info(
        "issue_supported",
        issue_id=str(issue.id),
        user_id=str(actor.id),
        support_count=support_count,
        priority_score=score,
    )
    return await uow.issues.reload(issue)

