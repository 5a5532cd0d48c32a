"""Priority scoring and deadline calculation.

score = (sum of supporter credibility) x urgency + days since creation

Urgency is a direct multiplier (LOW=1, MEDIUM=2, HIGH=3, CRITICAL=5). The
age term is a staleness boost of one point per day, so old issues are not
starved by purely support-driven ranking. The stored ``priority_score`` is a
cache refreshed on creation and on every support; ranking uses the read-time
score from :func:`display_score`.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta

from campusfix.datetime_utils import ensure_utc
from campusfix.models import IssueCategory, Urgency

# (default department, base deadline days) per category
CATEGORY_CONFIG: dict[str, tuple[str, float]] = {
    IssueCategory.ACADEMICS.value: ("dept-1", 7),
    IssueCategory.HOSTEL.value: ("dept-2", 3),
    IssueCategory.INFRASTRUCTURE.value: ("dept-3", 5),
    IssueCategory.HARASSMENT.value: ("dept-5", 1),
    IssueCategory.ADMINISTRATION.value: ("dept-6", 10),
    IssueCategory.CAREER_PLACEMENTS.value: ("dept-7", 5),
    IssueCategory.DIGITAL_SERVICES.value: ("dept-8", 2),
    IssueCategory.SPORTS_WELLNESS.value: ("dept-9", 4),
    IssueCategory.FINANCIAL_SERVICES.value: ("dept-10", 7),
    IssueCategory.TRANSPORTATION.value: ("dept-3", 3),
    IssueCategory.OTHER.value: ("dept-2", 7),
}

URGENCY_DEADLINE_FACTOR: dict[int, float] = {
    Urgency.CRITICAL: 0.2,
    Urgency.HIGH: 0.5,
    Urgency.MEDIUM: 1.0,
    Urgency.LOW: 1.5,
}

MIN_DEADLINE_DAYS = 1.0


def compute_priority_score(
    supporter_credibilities: Iterable[int],
    urgency: int,
    created_at: datetime,
    now: datetime,
) -> float:
    """Compute the ranking score, rounded to one decimal place."""
    support_score = sum(supporter_credibilities)
    hours_since_created = max((now - created_at).total_seconds(), 0.0) / 3600
    staleness = hours_since_created / 24
    return round(support_score * int(urgency) + staleness, 1)


def display_score(issue, supporter_credibilities: Iterable[int], now: datetime) -> float:
    """Read-time score for an issue from its current supporters."""
    return compute_priority_score(
        supporter_credibilities, issue.urgency, ensure_utc(issue.created_at), now
    )


def default_department(category: str) -> str:
    return CATEGORY_CONFIG[category][0]


def calculate_deadline(category: str, urgency: int, now: datetime) -> datetime:
    """deadline = now + base_days(category) x urgency factor, floored at one day."""
    _, base_days = CATEGORY_CONFIG[category]
    days = max(MIN_DEADLINE_DAYS, base_days * URGENCY_DEADLINE_FACTOR[Urgency(urgency)])
    return now + timedelta(days=days)
