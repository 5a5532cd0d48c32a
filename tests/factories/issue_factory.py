"""Issue test data factory."""

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

from campusfix.models import Issue, IssueCategory, IssueStatus, Urgency
from tests.factories.user_factory import FIXED_NOW


class IssueFactory:
    """Factory for creating Issue test instances in any lifecycle status."""

    _counter: int = 0

    @classmethod
    def create(
        cls,
        creator_id: UUID,
        status: IssueStatus = IssueStatus.OPEN,
        urgency: int = Urgency.HIGH,
        category: str = IssueCategory.INFRASTRUCTURE.value,
        department_id: str = "dept-3",
        created_at: datetime | None = None,
        **kwargs: Any,
    ) -> Issue:
        """Create an Issue with every column populated.

        Extra keyword arguments override column values, e.g.
        ``contest_window_end=...`` for a resolved issue.
        """
        cls._counter += 1
        created_at = created_at or FIXED_NOW - timedelta(hours=48)

        values = {
            "id": uuid4(),
            "title": f"Broken AC in lecture hall {cls._counter}",
            "description": "The air conditioning has been off for a week.",
            "category": category,
            "department_id": department_id,
            "creator_id": creator_id,
            "evidence_url": None,
            "status": IssueStatus(status).value,
            "urgency": int(urgency),
            "deadline": created_at + timedelta(days=2.5),
            "priority_score": 0.0,
            "support_count": 1,
            "contest_count": 0,
            "contest_round": 1,
            "contested_flag": False,
            "contest_window_end": None,
            "revalidation_window_end": None,
            "resolution_summary": None,
            "resolution_evidence_url": None,
            "resolved_at": None,
            "version": 1,
            "created_at": created_at,
            "updated_at": created_at,
        }
        values.update(kwargs)
        return Issue(**values)
