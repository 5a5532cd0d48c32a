"""Repositories for notifications and the credibility log."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update

from campusfix.models import CredibilityLog, Notification
from campusfix.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    model_class = Notification

    async def create(
        self,
        user_id: UUID,
        issue_id: UUID,
        notification_type: str,
        message: str,
        created_at: datetime,
    ) -> Notification:
        return await self.add(
            Notification(
                user_id=user_id,
                issue_id=issue_id,
                notification_type=notification_type,
                message=message,
                created_at=created_at,
            )
        )

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Notification], int]:
        """Return (page, total) for a user's notifications, newest first."""
        base = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            base = base.where(Notification.read_at.is_(None))

        count_result = await self.session.execute(
            select(func.count()).select_from(base.subquery())
        )
        total = count_result.scalar_one()

        result = await self.session.execute(
            base.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def count_unread(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        )
        return result.scalar_one()

    async def mark_read(self, notification_id: UUID, user_id: UUID, now: datetime) -> bool:
        """Mark one of the user's notifications read. False if it is not theirs."""
        result = await self.session.execute(
            update(Notification)
            .where(Notification.id == notification_id, Notification.user_id == user_id)
            .values(read_at=func.coalesce(Notification.read_at, now))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def mark_all_read(self, user_id: UUID, now: datetime) -> int:
        result = await self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read_at.is_(None))
            .values(read_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class CredibilityLogRepository(BaseRepository[CredibilityLog]):
    model_class = CredibilityLog

    async def exists(self, user_id: UUID, issue_id: UUID, rule: str) -> bool:
        result = await self.session.execute(
            select(CredibilityLog.id).where(
                CredibilityLog.user_id == user_id,
                CredibilityLog.issue_id == issue_id,
                CredibilityLog.rule == rule,
            )
        )
        return result.scalar_one_or_none() is not None

    async def record(
        self, user_id: UUID, issue_id: UUID, rule: str, delta: int, credibility_after: int
    ) -> CredibilityLog:
        return await self.add(
            CredibilityLog(
                user_id=user_id,
                issue_id=issue_id,
                rule=rule,
                delta=delta,
                credibility_after=credibility_after,
            )
        )

    async def list_for_user(self, user_id: UUID, limit: int = 50) -> list[CredibilityLog]:
        result = await self.session.execute(
            select(CredibilityLog)
            .where(CredibilityLog.user_id == user_id)
            .order_by(CredibilityLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
