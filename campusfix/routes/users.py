"""Profiles, the credibility directory and per-user support history."""

from fastapi import APIRouter, Depends, Query

from campusfix.auth import Actor, get_current_actor
from campusfix.dependencies import UnitOfWorkFactory, get_uow_factory, run_in_uow
from campusfix.exceptions import AuthorizationError, NotFoundError
from campusfix.models import UserRole
from campusfix.repositories.base import parse_uuid
from campusfix.schemas import (
    CredibilityLogEntry,
    PublicUserResponse,
    SupportResponse,
    UserResponse,
)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[PublicUserResponse])
async def list_users(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """Students ranked by credibility. Names and emails are withheld."""

    async def operation(uow):
        users = await uow.users.list_by_credibility(limit=limit, offset=offset)
        return [
            PublicUserResponse(
                id=u.id,
                role=u.role,
                credibility=u.credibility,
                department_id=u.department_id,
                is_me=u.id == actor.id,
            )
            for u in users
        ]

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/me", response_model=UserResponse)
async def get_me(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        user = await uow.users.get_by_id(actor.id)
        if user is None:
            raise NotFoundError("User", str(actor.id))
        return UserResponse.model_validate(user)

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/me/credibility", response_model=list[CredibilityLogEntry])
async def get_my_credibility_history(
    limit: int = Query(50, ge=1, le=200),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """Credibility adjustments applied to the caller, newest first."""

    async def operation(uow):
        entries = await uow.credibility_log.list_for_user(actor.id, limit=limit)
        return [CredibilityLogEntry.model_validate(e) for e in entries]

    return await run_in_uow(uow_factory, operation, commit=False)


@router.get("/{user_id}/supports", response_model=list[SupportResponse])
async def list_user_supports(
    user_id: str,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """Issues a user has supported. Visible to that user and to admins."""
    parsed = parse_uuid(user_id)
    if parsed is None:
        raise NotFoundError("User", user_id)
    if parsed != actor.id and actor.role != UserRole.ADMIN.value:
        raise AuthorizationError("view another user's supports", UserRole.ADMIN.value)

    async def operation(uow):
        if await uow.users.get_by_id(parsed) is None:
            raise NotFoundError("User", user_id)
        supports = await uow.supports.list_for_user(parsed)
        return [SupportResponse.model_validate(s) for s in supports]

    return await run_in_uow(uow_factory, operation, commit=False)
