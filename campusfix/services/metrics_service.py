"""Department and system performance metrics."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from campusfix.datetime_utils import ensure_utc
from campusfix.models import Department, Issue, IssueStatus
from campusfix.state_machine import RESOLVED_STATUSES

DEFAULT_PERFORMANCE_SCORE = 85

BACKLOG_STATUSES = frozenset({IssueStatus.OPEN.value, IssueStatus.IN_REVIEW.value})


@dataclass(frozen=True)
class DepartmentMetrics:
    department_id: str
    name: str
    total_issues: int
    resolved_issues: int
    overdue_issues: int
    contested_issues: int
    avg_resolution_days: float
    deadline_adherence: int
    contest_rate: int
    resolution_rate: int
    performance_score: int


@dataclass(frozen=True)
class SystemMetrics:
    total_issues: int
    open_issues: int
    resolved_issues: int
    overdue_issues: int
    contested_issues: int
    avg_backlog_age_days: float
    overdue_percentage: int
    resolution_rate: int


def is_overdue(issue: Issue, now: datetime) -> bool:
    """An issue is overdue when its deadline has passed and it is not resolved."""
    if issue.status in RESOLVED_STATUSES or issue.status == IssueStatus.REJECTED.value:
        return False
    return ensure_utc(now) > ensure_utc(issue.deadline)


def _days(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 86400


def _percent(part: int, whole: int, default: float = 0.0) -> float:
    return part / whole * 100 if whole else default


def department_metrics(
    department: Department,
    issues: Sequence[Issue],
    now: datetime,
) -> DepartmentMetrics:
    """
    Score a department from its issues.

    Starting from the department's base score: -10 per full 10% overdue
    rate, -5 per full 10% contested rate, +10 above 90% deadline adherence,
    -15 below 70%; clamped to [0, 100]. A department with no issues keeps
    its base score.
    """
    dept_issues = [i for i in issues if i.department_id == department.id]
    total = len(dept_issues)
    resolved = [i for i in dept_issues if i.status in RESOLVED_STATUSES]
    overdue = sum(1 for i in dept_issues if is_overdue(i, now))
    contested = sum(1 for i in dept_issues if i.contested_flag)

    timed = [i for i in resolved if i.resolved_at is not None]
    avg_resolution = (
        sum(_days(i.created_at, i.resolved_at) for i in timed) / len(timed) if timed else 0.0
    )
    on_time = sum(1 for i in timed if ensure_utc(i.resolved_at) <= ensure_utc(i.deadline))
    adherence = _percent(on_time, len(timed), default=100.0)
    contest_rate = _percent(contested, total)

    score = department.performance_score or DEFAULT_PERFORMANCE_SCORE
    if total > 0:
        overdue_rate = _percent(overdue, total)
        score -= math.floor(overdue_rate / 10) * 10
        score -= math.floor(contest_rate / 10) * 5
        if adherence > 90:
            score += 10
        if adherence < 70:
            score -= 15
        score = max(0, min(100, score))

    return DepartmentMetrics(
        department_id=department.id,
        name=department.name,
        total_issues=total,
        resolved_issues=len(resolved),
        overdue_issues=overdue,
        contested_issues=contested,
        avg_resolution_days=round(avg_resolution, 1),
        deadline_adherence=round(adherence),
        contest_rate=round(contest_rate),
        resolution_rate=round(_percent(len(resolved), total)),
        performance_score=round(score),
    )


def system_metrics(issues: Sequence[Issue], now: datetime) -> SystemMetrics:
    total = len(issues)
    resolved = sum(1 for i in issues if i.status in RESOLVED_STATUSES)
    overdue = sum(1 for i in issues if is_overdue(i, now))
    backlog = [i for i in issues if i.status in BACKLOG_STATUSES]
    avg_backlog_age = (
        sum(_days(i.created_at, now) for i in backlog) / len(backlog) if backlog else 0.0
    )
    return SystemMetrics(
        total_issues=total,
        open_issues=sum(1 for i in issues if i.status == IssueStatus.OPEN.value),
        resolved_issues=resolved,
        overdue_issues=overdue,
        contested_issues=sum(1 for i in issues if i.contested_flag),
        avg_backlog_age_days=round(avg_backlog_age, 1),
        overdue_percentage=round(_percent(overdue, total)),
        resolution_rate=round(_percent(resolved, total)),
    )
