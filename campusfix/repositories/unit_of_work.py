"""Unit of Work pattern implementation.

One unit of work is one session and one transaction. Services stage their
writes through its repositories; the caller commits once the service
returns. Leaving the context without committing rolls everything back.
"""

from __future__ import annotations

from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campusfix.logging_config import get_logger
from campusfix.repositories.activity_repository import (
    CommentRepository,
    ProposalRepository,
    TimelineRepository,
)
from campusfix.repositories.engagement_repository import (
    ContestRepository,
    RevalidationVoteRepository,
    SupportRepository,
)
from campusfix.repositories.issue_repository import IssueRepository
from campusfix.repositories.notification_repository import (
    CredibilityLogRepository,
    NotificationRepository,
)
from campusfix.repositories.user_repository import DepartmentRepository, UserRepository

logger = get_logger(__name__)

_REPOSITORIES: dict[str, type] = {
    "issues": IssueRepository,
    "supports": SupportRepository,
    "contests": ContestRepository,
    "votes": RevalidationVoteRepository,
    "users": UserRepository,
    "departments": DepartmentRepository,
    "timeline": TimelineRepository,
    "comments": CommentRepository,
    "proposals": ProposalRepository,
    "notifications": NotificationRepository,
    "credibility_log": CredibilityLogRepository,
}


class UnitOfWork:
    """Coordinates the repositories of one transaction.

    Usage:
        async with UnitOfWork(session_factory) as uow:
            issue = await IssueService(uow).approve_issue(actor, issue_id)
            await uow.commit()

    If an exception occurs, or the block exits without ``commit()``, the
    transaction is rolled back.
    """

    issues: IssueRepository
    supports: SupportRepository
    contests: ContestRepository
    votes: RevalidationVoteRepository
    users: UserRepository
    departments: DepartmentRepository
    timeline: TimelineRepository
    comments: CommentRepository
    proposals: ProposalRepository
    notifications: NotificationRepository
    credibility_log: CredibilityLogRepository

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession],
    ) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._committed = False

    @property
    def session(self) -> AsyncSession:
        """Get the current database session.

        Raises:
            RuntimeError: If the Unit of Work has not been entered
        """
        if self._session is None:
            raise RuntimeError("Unit of Work not started. Use 'async with' context manager.")
        return self._session

    def __getattr__(self, name: str) -> Any:
        # Repositories are created on first access and bound to the session.
        repository_class = _REPOSITORIES.get(name)
        if repository_class is None:
            raise AttributeError(name)
        repository = repository_class(self.session)
        setattr(self, name, repository)
        return repository

    async def __aenter__(self) -> UnitOfWork:
        self._session = self._session_factory()
        self._committed = False
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if self._session is None:
            return

        try:
            if exc_type is not None:
                await self.rollback()
                logger.debug("transaction_rolled_back", exception_type=exc_type.__name__)
            elif not self._committed:
                # Explicit commit is required
                await self.rollback()
        finally:
            await self._session.close()
            self._session = None
            self._reset_repositories()

    async def commit(self) -> None:
        await self.session.commit()
        self._committed = True
        logger.debug("transaction_committed")

    async def rollback(self) -> None:
        if self._session is not None:
            await self._session.rollback()

    def _reset_repositories(self) -> None:
        for name in _REPOSITORIES:
            self.__dict__.pop(name, None)


__all__ = ["UnitOfWork"]
