"""Repositories for student engagement: supports, contests and revalidation votes.

Each table carries a UNIQUE key per (user, issue). Inserts are pre-checked
by the services and the constraint backs them up under concurrency.
"""

from uuid import UUID

from sqlalchemy import delete, func, select

from campusfix.exceptions import AlreadyActedError, DuplicateSupportError
from campusfix.models import Contest, RevalidationVote, Support, User
from campusfix.repositories.base import BaseRepository


class SupportRepository(BaseRepository[Support]):
    model_class = Support

    async def exists(self, user_id: UUID, issue_id: UUID) -> bool:
        result = await self.session.execute(
            select(Support.id).where(Support.user_id == user_id, Support.issue_id == issue_id)
        )
        return result.scalar_one_or_none() is not None

    async def create(self, user_id: UUID, issue_id: UUID) -> Support:
        return await self.add_unique(
            Support(user_id=user_id, issue_id=issue_id),
            DuplicateSupportError(str(issue_id)),
        )

    async def count_for_issue(self, issue_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Support).where(Support.issue_id == issue_id)
        )
        return result.scalar_one()

    async def supporter_ids(self, issue_id: UUID) -> list[UUID]:
        result = await self.session.execute(
            select(Support.user_id).where(Support.issue_id == issue_id)
        )
        return list(result.scalars().all())

    async def supporter_credibilities(self, issue_id: UUID) -> list[int]:
        """Current credibility of every supporter of an issue."""
        result = await self.session.execute(
            select(User.credibility)
            .join(Support, Support.user_id == User.id)
            .where(Support.issue_id == issue_id)
        )
        return list(result.scalars().all())

    async def list_for_user(self, user_id: UUID) -> list[Support]:
        result = await self.session.execute(
            select(Support).where(Support.user_id == user_id).order_by(Support.created_at)
        )
        return list(result.scalars().all())

    async def list_all(self, limit: int = 500, offset: int = 0) -> list[Support]:
        result = await self.session.execute(
            select(Support).order_by(Support.created_at, Support.id).limit(limit).offset(offset)
        )
        return list(result.scalars().all())


class ContestRepository(BaseRepository[Contest]):
    model_class = Contest

    async def exists(self, issue_id: UUID, user_id: UUID) -> bool:
        result = await self.session.execute(
            select(Contest.id).where(Contest.issue_id == issue_id, Contest.user_id == user_id)
        )
        return result.scalar_one_or_none() is not None

    async def create(self, issue_id: UUID, user_id: UUID, reason: str, round: int) -> Contest:
        return await self.add_unique(
            Contest(issue_id=issue_id, user_id=user_id, reason=reason, round=round),
            AlreadyActedError(str(issue_id), "contested"),
        )

    async def count_for_round(self, issue_id: UUID, round: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Contest)
            .where(Contest.issue_id == issue_id, Contest.round == round)
        )
        return result.scalar_one()

    async def contester_ids(self, issue_id: UUID, round: int) -> list[UUID]:
        result = await self.session.execute(
            select(Contest.user_id).where(Contest.issue_id == issue_id, Contest.round == round)
        )
        return list(result.scalars().all())


class RevalidationVoteRepository(BaseRepository[RevalidationVote]):
    model_class = RevalidationVote

    async def exists(self, issue_id: UUID, user_id: UUID) -> bool:
        result = await self.session.execute(
            select(RevalidationVote.id).where(
                RevalidationVote.issue_id == issue_id,
                RevalidationVote.user_id == user_id,
            )
        )
        return result.scalar_one_or_none() is not None

    async def create(self, issue_id: UUID, user_id: UUID, vote_type: str) -> RevalidationVote:
        return await self.add_unique(
            RevalidationVote(issue_id=issue_id, user_id=user_id, vote_type=vote_type),
            AlreadyActedError(str(issue_id), "voted on"),
        )

    async def vote_types(self, issue_id: UUID) -> list[str]:
        result = await self.session.execute(
            select(RevalidationVote.vote_type).where(RevalidationVote.issue_id == issue_id)
        )
        return list(result.scalars().all())

    async def clear(self, issue_id: UUID) -> int:
        """Delete every vote on an issue, returning how many were removed."""
        result = await self.session.execute(
            delete(RevalidationVote).where(RevalidationVote.issue_id == issue_id)
        )
        return result.rowcount
