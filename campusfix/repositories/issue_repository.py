"""Repository for issues.

Status transitions and admin edits go through :meth:`compare_and_set`, an
optimistic write keyed on ``version``. Support and contest counters use
atomic increments guarded by the statuses that permit the action.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import extract, func, literal, select, update

from campusfix.exceptions import NotFoundError, StaleStateError
from campusfix.models import Issue, Support, User
from campusfix.repositories.base import BaseRepository, parse_uuid
from campusfix.state_machine import CONTESTABLE_STATUSES, SUPPORTABLE_STATUSES


class IssueRepository(BaseRepository[Issue]):
    model_class = Issue

    async def get_required(self, issue_id: UUID | str) -> Issue:
        """Load an issue or raise NotFoundError, malformed ids included."""
        parsed = parse_uuid(issue_id)
        issue = await self.get_by_id(parsed) if parsed is not None else None
        if issue is None:
            raise NotFoundError("Issue", str(issue_id))
        return issue

    async def compare_and_set(
        self,
        issue: Issue,
        expected_version: int,
        now: datetime,
        **values,
    ) -> Issue:
        """Write ``values`` only if the issue is still at ``expected_version``.

        Bumps ``version`` and ``updated_at``. Raises StaleStateError when
        another writer got there first; nothing is written in that case.
        """
        result = await self.session.execute(
            update(Issue)
            .where(Issue.id == issue.id, Issue.version == expected_version)
            .values(version=expected_version + 1, updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleStateError(str(issue.id))
        await self.session.refresh(issue)
        return issue

    async def increment_support_count(self, issue_id: UUID, now: datetime) -> int:
        """Atomically add one support; the issue must still be supportable."""
        result = await self.session.execute(
            update(Issue)
            .where(Issue.id == issue_id, Issue.status.in_(SUPPORTABLE_STATUSES))
            .values(support_count=Issue.support_count + 1, updated_at=now)
            .returning(Issue.support_count)
            .execution_options(synchronize_session=False)
        )
        count = result.scalar_one_or_none()
        if count is None:
            raise StaleStateError(str(issue_id))
        return count

    async def increment_contest_count(self, issue_id: UUID, now: datetime) -> tuple[int, int]:
        """Atomically add one contest and raise the contested flag.

        Returns (contest_count, version) as of the increment.
        """
        result = await self.session.execute(
            update(Issue)
            .where(Issue.id == issue_id, Issue.status.in_(CONTESTABLE_STATUSES))
            .values(
                contest_count=Issue.contest_count + 1,
                contested_flag=True,
                updated_at=now,
            )
            .returning(Issue.contest_count, Issue.version)
            .execution_options(synchronize_session=False)
        )
        row = result.one_or_none()
        if row is None:
            raise StaleStateError(str(issue_id))
        return row[0], row[1]

    async def set_priority_score(self, issue_id: UUID, score: float) -> None:
        await self.session.execute(
            update(Issue)
            .where(Issue.id == issue_id)
            .values(priority_score=score)
            .execution_options(synchronize_session=False)
        )

    async def reload(self, issue: Issue) -> Issue:
        await self.session.refresh(issue)
        return issue

    def _filtered(self, query, status: str | None, department_id: str | None):
        if status is not None:
            query = query.where(Issue.status == status)
        if department_id is not None:
            query = query.where(Issue.department_id == department_id)
        return query

    async def list_ranked(
        self,
        now: datetime,
        status: str | None = None,
        department_id: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[tuple[Issue, int]]:
        """
        Page of issues ordered by read-time priority score, highest first.

        Returns each issue with the summed current credibility of its
        supporters. Ties fall back to the older issue.
        """
        support_total = (
            select(func.coalesce(func.sum(User.credibility), 0))
            .join(Support, Support.user_id == User.id)
            .where(Support.issue_id == Issue.id)
            .correlate(Issue)
            .scalar_subquery()
        )
        age_days = (literal(now.timestamp()) - extract("epoch", Issue.created_at)) / 86400.0
        score = (support_total * Issue.urgency + age_days).label("score")
        query = self._filtered(select(Issue, support_total, score), status, department_id)
        result = await self.session.execute(
            query.order_by(score.desc(), Issue.created_at).limit(limit).offset(offset)
        )
        return [(issue, int(total)) for issue, total, _ in result.all()]

    async def count(self, status: str | None = None, department_id: str | None = None) -> int:
        query = self._filtered(select(func.count()).select_from(Issue), status, department_id)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def list_by_department(self, department_id: str) -> list[Issue]:
        result = await self.session.execute(
            select(Issue).where(Issue.department_id == department_id)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[Issue]:
        result = await self.session.execute(select(Issue))
        return list(result.scalars().all())
