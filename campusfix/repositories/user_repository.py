"""Repositories for users and departments."""

from uuid import UUID

from sqlalchemy import select, update

from campusfix.exceptions import NotFoundError
from campusfix.models import Department, User, UserRole
from campusfix.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model_class = User

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_credibility_for_update(self, user_id: UUID) -> int:
        """Read a user's credibility, holding a row lock until the transaction ends."""
        result = await self.session.execute(
            select(User.credibility).where(User.id == user_id).with_for_update()
        )
        score = result.scalar_one_or_none()
        if score is None:
            raise NotFoundError("User", str(user_id))
        return score

    async def set_credibility(self, user_id: UUID, score: int) -> None:
        await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(credibility=score)
            .execution_options(synchronize_session=False)
        )

    async def list_by_credibility(self, limit: int = 50, offset: int = 0) -> list[User]:
        """Students ranked by credibility, highest first."""
        result = await self.session.execute(
            select(User)
            .where(User.role == UserRole.STUDENT.value)
            .order_by(User.credibility.desc(), User.created_at)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())


class DepartmentRepository(BaseRepository[Department]):
    model_class = Department

    async def list_all(self) -> list[Department]:
        result = await self.session.execute(select(Department).order_by(Department.id))
        return list(result.scalars().all())
