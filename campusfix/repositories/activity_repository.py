"""Repositories for the append-only issue collections."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select

from campusfix.models import Comment, Proposal, TimelineEvent
from campusfix.repositories.base import BaseRepository


class TimelineRepository(BaseRepository[TimelineEvent]):
    model_class = TimelineEvent

    async def append(
        self,
        issue_id: UUID,
        event_type: str,
        user_id: UUID,
        user_name: str,
        description: str,
        created_at: datetime,
        metadata: dict[str, Any] | None = None,
    ) -> TimelineEvent:
        return await self.add(
            TimelineEvent(
                issue_id=issue_id,
                event_type=event_type,
                user_id=user_id,
                user_name=user_name,
                description=description,
                metadata_=metadata or {},
                created_at=created_at,
            )
        )

    async def list_for_issue(self, issue_id: UUID) -> list[TimelineEvent]:
        result = await self.session.execute(
            select(TimelineEvent)
            .where(TimelineEvent.issue_id == issue_id)
            .order_by(TimelineEvent.created_at)
        )
        return list(result.scalars().all())


class CommentRepository(BaseRepository[Comment]):
    model_class = Comment

    async def append(
        self, issue_id: UUID, user_id: UUID, user_name: str, content: str, created_at: datetime
    ) -> Comment:
        return await self.add(
            Comment(
                issue_id=issue_id,
                user_id=user_id,
                user_name=user_name,
                content=content,
                created_at=created_at,
            )
        )

    async def list_for_issue(self, issue_id: UUID) -> list[Comment]:
        result = await self.session.execute(
            select(Comment).where(Comment.issue_id == issue_id).order_by(Comment.created_at)
        )
        return list(result.scalars().all())


class ProposalRepository(BaseRepository[Proposal]):
    model_class = Proposal

    async def append(
        self, issue_id: UUID, user_id: UUID, user_name: str, content: str, created_at: datetime
    ) -> Proposal:
        return await self.add(
            Proposal(
                issue_id=issue_id,
                user_id=user_id,
                user_name=user_name,
                content=content,
                votes=0,
                created_at=created_at,
            )
        )

    async def list_for_issue(self, issue_id: UUID) -> list[Proposal]:
        """Proposals for an issue, most voted first."""
        result = await self.session.execute(
            select(Proposal)
            .where(Proposal.issue_id == issue_id)
            .order_by(Proposal.votes.desc(), Proposal.created_at)
        )
        return list(result.scalars().all())
