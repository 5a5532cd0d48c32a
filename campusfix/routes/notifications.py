"""Notification endpoints for the current user."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from campusfix.auth import Actor, get_current_actor
from campusfix.datetime_utils import utcnow
from campusfix.dependencies import UnitOfWorkFactory, get_uow_factory, run_in_uow
from campusfix.exceptions import NotFoundError
from campusfix.schemas import NotificationListResponse, NotificationResponse

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    """List notifications for the current user, newest first."""

    async def operation(uow):
        items, total = await uow.notifications.list_for_user(
            actor.id,
            unread_only=unread_only,
            limit=per_page,
            offset=(page - 1) * per_page,
        )
        return NotificationListResponse(
            items=[NotificationResponse.model_validate(n) for n in items],
            total=total,
            unread_count=await uow.notifications.count_unread(actor.id),
        )

    return await run_in_uow(uow_factory, operation, commit=False)


@router.post("/read-all")
async def mark_all_read(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        return await uow.notifications.mark_all_read(actor.id, utcnow())

    marked = await run_in_uow(uow_factory, operation)
    return {"ok": True, "marked": marked}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: UUID,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    actor: Actor = Depends(get_current_actor),
):
    async def operation(uow):
        if not await uow.notifications.mark_read(notification_id, actor.id, utcnow()):
            raise NotFoundError("Notification", str(notification_id))

    await run_in_uow(uow_factory, operation)
    return {"ok": True}
