"""Issue endpoints for submission, triage, support, contests and revalidation."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from campusfix.auth import Actor, get_current_actor
from campusfix.dependencies import UnitOfWorkFactory, get_uow_factory, run_in_uow
from campusfix.models import Issue
from campusfix.schemas import (
    CommentCreate,
    CommentResponse,
    ContestCreate,
    ContestDecisionRequest,
    IssueCreate,
    IssueDetailResponse,
    IssueListResponse,
    IssueReject,
    IssueResolve,
    IssueResponse,
    ProposalCreate,
    ProposalResponse,
    RevalidationVoteRequest,
    TimelineEventResponse,
    VoteTallyResponse,
)
from campusfix.services.issue_service import IssueService

router = APIRouter(prefix="/api/issues", tags=["issues"])


def issue_response(issue: Issue, score: float) -> IssueResponse:
    """Serialize an issue with its read-time priority score."""
    return IssueResponse.model_validate(issue).model_copy(update={"priority_score": score})


async def _mutate(uow_factory: UnitOfWorkFactory, action) -> IssueResponse:
    """Run a mutating service call and serialize the updated issue."""

    async def operation(uow):
        service = IssueService(uow)
        issue = await action(service)
        return issue_response(issue, await service.score(issue))

    operation.__name__ = getattr(action, "__name__", "issue_mutation")
    return await run_in_uow(uow_factory, operation)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("", response_model=IssueListResponse)
async def list_issues(
    status: str | None = Query(None),
    department_id: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """List issues ranked by priority, highest first."""

    async def operation(uow):
        ranked, total = await IssueService(uow).list_issues(
            status=status, department_id=department_id, limit=limit, offset=offset
        )
        return IssueListResponse(
            items=[issue_response(r.issue, r.score) for r in ranked],
            total=total,
            limit=limit,
            offset=offset,
        )

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/{issue_id}", response_model=IssueDetailResponse)
async def get_issue(
    issue_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        detail = await IssueService(uow).get_issue(issue_id)
        base = issue_response(detail.issue, detail.score)
        return IssueDetailResponse(
            **base.model_dump(),
            timeline=[TimelineEventResponse.model_validate(e) for e in detail.timeline],
            comments=[CommentResponse.model_validate(c) for c in detail.comments],
            proposals=[ProposalResponse.model_validate(p) for p in detail.proposals],
            supported_by_me=await uow.supports.exists(actor.id, detail.issue.id),
        )

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/{issue_id}/revalidation-votes", response_model=VoteTallyResponse)
async def get_vote_tally(
    issue_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        tally = await IssueService(uow).vote_tally(issue_id)
        return VoteTallyResponse.model_validate(tally)

    return await run_in_uow(uow_factory, operation, commit=False)


# ---------------------------------------------------------------------------
# Submission & support
# ---------------------------------------------------------------------------


@router.post("", response_model=IssueResponse, status_code=201)
async def submit_issue(
    body: IssueCreate,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """Report a new issue. The reporter's support is counted automatically."""

    async def submit(service: IssueService):
        return await service.submit_issue(
            actor,
            title=body.title,
            description=body.description,
            category=body.category,
            department_id=body.department_id,
            urgency=body.urgency,
            deadline=body.deadline,
            evidence_url=body.evidence_url,
        )

    return await _mutate(uow_factory, submit)


@router.post("/{issue_id}/support", response_model=IssueResponse)
async def support_issue(
    issue_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def support(service: IssueService):
        return await service.support_issue(actor, issue_id)

    return await _mutate(uow_factory, support)


# ---------------------------------------------------------------------------
# Admin triage & resolution
# ---------------------------------------------------------------------------


@router.post("/{issue_id}/approve", response_model=IssueResponse)
async def approve_issue(
    issue_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def approve(service: IssueService):
        return await service.approve_issue(actor, issue_id)

    return await _mutate(uow_factory, approve)


@router.post("/{issue_id}/reject", response_model=IssueResponse)
async def reject_issue(
    issue_id: str,
    body: IssueReject | None = None,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def reject(service: IssueService):
        options = body or IssueReject()
        return await service.reject_issue(
            actor, issue_id, reason=options.reason, mark_fake=options.mark_fake
        )

    return await _mutate(uow_factory, reject)


@router.post("/{issue_id}/start-review", response_model=IssueResponse)
async def start_review(
    issue_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def review(service: IssueService):
        return await service.start_review(actor, issue_id)

    return await _mutate(uow_factory, review)


@router.post("/{issue_id}/return-to-open", response_model=IssueResponse)
async def return_to_open(
    issue_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def reopen(service: IssueService):
        return await service.return_to_open(actor, issue_id)

    return await _mutate(uow_factory, reopen)


@router.post("/{issue_id}/resolve", response_model=IssueResponse)
async def resolve_issue(
    issue_id: str,
    body: IssueResolve,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def resolve(service: IssueService):
        return await service.resolve_issue(actor, issue_id, body.summary, body.evidence_url)

    return await _mutate(uow_factory, resolve)


@router.post("/{issue_id}/re-resolve", response_model=IssueResponse)
async def re_resolve_issue(
    issue_id: str,
    body: IssueResolve,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def re_resolve(service: IssueService):
        return await service.re_resolve_issue(actor, issue_id, body.summary, body.evidence_url)

    return await _mutate(uow_factory, re_resolve)


@router.patch("/{issue_id}", response_model=IssueResponse)
async def update_issue_fields(
    issue_id: str,
    fields: dict[str, Any] = Body(...),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """Admin partial update of status, counters, priority score or resolution evidence."""

    async def update(service: IssueService):
        return await service.update_issue_fields(actor, issue_id, fields)

    return await _mutate(uow_factory, update)


# ---------------------------------------------------------------------------
# Contests & revalidation
# ---------------------------------------------------------------------------


@router.post("/{issue_id}/contest", response_model=IssueResponse)
async def contest_issue(
    issue_id: str,
    body: ContestCreate,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def contest(service: IssueService):
        return await service.contest_issue(actor, issue_id, body.reason)

    return await _mutate(uow_factory, contest)


@router.post("/{issue_id}/contest-decision", response_model=IssueResponse)
async def contest_decision(
    issue_id: str,
    body: ContestDecisionRequest,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def decide(service: IssueService):
        return await service.contest_decision(
            actor, issue_id, body.decision, body.explanation, malicious=body.malicious
        )

    return await _mutate(uow_factory, decide)


@router.post("/{issue_id}/revalidation-votes", response_model=IssueResponse)
async def revalidation_vote(
    issue_id: str,
    body: RevalidationVoteRequest,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def vote(service: IssueService):
        return await service.revalidation_vote(actor, issue_id, body.vote_type)

    return await _mutate(uow_factory, vote)


# ---------------------------------------------------------------------------
# Discussion
# ---------------------------------------------------------------------------


@router.post("/{issue_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    issue_id: str,
    body: CommentCreate,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        comment = await IssueService(uow).add_comment(actor, issue_id, body.text)
        return CommentResponse.model_validate(comment)

    return await run_in_uow(uow_factory, operation)


@router.post("/{issue_id}/proposals", response_model=ProposalResponse, status_code=201)
async def add_proposal(
    issue_id: str,
    body: ProposalCreate,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        proposal = await IssueService(uow).add_proposal(actor, issue_id, body.text)
        return ProposalResponse.model_validate(proposal)

    return await run_in_uow(uow_factory, operation)
