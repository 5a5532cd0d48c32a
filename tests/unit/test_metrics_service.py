"""Tests for department and system performance metrics."""

from datetime import timedelta
from uuid import uuid4

from campusfix.models import IssueStatus
from campusfix.services.metrics_service import department_metrics, is_overdue, system_metrics
from tests.factories import FIXED_NOW, IssueFactory, make_department

NOW = FIXED_NOW
CREATOR = uuid4()


def _issue(status, deadline_in_days=2, **kwargs):
    kwargs.setdefault("created_at", NOW - timedelta(days=4))
    kwargs.setdefault("deadline", NOW + timedelta(days=deadline_in_days))
    return IssueFactory.create(CREATOR, status=status, **kwargs)


class TestIsOverdue:
    def test_open_past_deadline(self):
        assert is_overdue(_issue(IssueStatus.OPEN, deadline_in_days=-1), NOW) is True

    def test_resolved_never_overdue(self):
        assert is_overdue(_issue(IssueStatus.RESOLVED, deadline_in_days=-1), NOW) is False

    def test_rejected_never_overdue(self):
        assert is_overdue(_issue(IssueStatus.REJECTED, deadline_in_days=-1), NOW) is False

    def test_before_deadline(self):
        assert is_overdue(_issue(IssueStatus.IN_REVIEW), NOW) is False


class TestDepartmentMetrics:
    def test_no_issues_keeps_base_score(self):
        metrics = department_metrics(make_department(score=75), [], NOW)

        assert metrics.total_issues == 0
        assert metrics.performance_score == 75
        assert metrics.deadline_adherence == 100

    def test_on_time_resolutions_earn_bonus(self):
        issues = [
            _issue(IssueStatus.RESOLVED, resolved_at=NOW - timedelta(days=1), created_at=NOW - timedelta(days=3))
            for _ in range(2)
        ]

        metrics = department_metrics(make_department(score=75), issues, NOW)

        assert metrics.resolved_issues == 2
        assert metrics.deadline_adherence == 100
        assert metrics.avg_resolution_days == 2.0
        assert metrics.resolution_rate == 100
        assert metrics.performance_score == 85

    def test_overdue_and_contested_penalties(self):
        issues = [
            _issue(IssueStatus.OPEN, deadline_in_days=-1),
            _issue(IssueStatus.OPEN),
            _issue(IssueStatus.RESOLVED, resolved_at=NOW, contested_flag=True, contest_count=1,
                   deadline=NOW - timedelta(days=1)),
            _issue(IssueStatus.IN_REVIEW),
        ]

        metrics = department_metrics(make_department(score=75), issues, NOW)

        # 25% overdue -> -20, 25% contested -> -10, 0% adherence -> -15
        assert metrics.overdue_issues == 1
        assert metrics.contested_issues == 1
        assert metrics.deadline_adherence == 0
        assert metrics.performance_score == 30

    def test_ignores_other_departments(self):
        issues = [_issue(IssueStatus.OPEN, department_id="dept-9")]

        assert department_metrics(make_department(), issues, NOW).total_issues == 0

    def test_clamped_at_zero(self):
        issues = [
            _issue(IssueStatus.OPEN, deadline_in_days=-1, contested_flag=True) for _ in range(3)
        ]

        assert department_metrics(make_department(score=20), issues, NOW).performance_score == 0


class TestSystemMetrics:
    def test_counts(self):
        issues = [
            _issue(IssueStatus.OPEN, deadline_in_days=-1),
            _issue(IssueStatus.OPEN),
            _issue(IssueStatus.FINAL_CLOSED),
            _issue(IssueStatus.PENDING_APPROVAL),
        ]

        metrics = system_metrics(issues, NOW)

        assert metrics.total_issues == 4
        assert metrics.open_issues == 2
        assert metrics.resolved_issues == 1
        assert metrics.overdue_issues == 1
        assert metrics.overdue_percentage == 25
        assert metrics.resolution_rate == 25
        assert metrics.avg_backlog_age_days == 4.0

    def test_empty(self):
        metrics = system_metrics([], NOW)

        assert metrics.total_issues == 0
        assert metrics.resolution_rate == 0
