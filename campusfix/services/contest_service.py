"""Contest and revalidation engine.

Tallies contests and revalidation votes, enforces the contest and
revalidation windows, and decides escalation and revalidation outcomes.
Windows are fixed when an issue is rejected, resolved or re-resolved and are
checked lazily when a student acts; nothing transitions on time alone.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from campusfix.datetime_utils import ensure_utc
from campusfix.exceptions import ValidationError, WindowExpiredError
from campusfix.models import VoteType

CONTEST_WINDOW = "contest"
REVALIDATION_WINDOW = "revalidation"


@dataclass(frozen=True)
class VoteTally:
    """Revalidation vote counts for one round."""

    confirms: int
    rejects: int
    threshold: int
    window_end: datetime | None
    outcome: VoteType | None

    @property
    def decided(self) -> bool:
        return self.outcome is not None


def window_end(now: datetime, window_days: int) -> datetime:
    """Compute a window end. Windows are never extended once set."""
    return now + timedelta(days=window_days)


def ensure_window_open(window: str, end: datetime | None, now: datetime) -> None:
    """Raise WindowExpiredError when ``now`` is at or past ``end``."""
    if end is None:
        raise ValidationError(f"The {window} window has not been opened for this issue")
    end = ensure_utc(end)
    if ensure_utc(now) >= end:
        raise WindowExpiredError(window, end, ensure_utc(now))


def should_escalate(contest_count: int, threshold: int) -> bool:
    return contest_count >= threshold


def revalidation_outcome(confirms: int, rejects: int, threshold: int) -> VoteType | None:
    """Decide a revalidation round. Confirmation is checked first."""
    if confirms >= threshold:
        return VoteType.CONFIRM
    if rejects >= threshold:
        return VoteType.REJECT
    return None


def tally_votes(
    vote_types: Iterable[str],
    threshold: int,
    end: datetime | None = None,
) -> VoteTally:
    """Build a VoteTally from the vote types cast this round."""
    confirms = rejects = 0
    for vote_type in vote_types:
        if vote_type == VoteType.CONFIRM.value:
            confirms += 1
        elif vote_type == VoteType.REJECT.value:
            rejects += 1
    return VoteTally(
        confirms=confirms,
        rejects=rejects,
        threshold=threshold,
        window_end=end,
        outcome=revalidation_outcome(confirms, rejects, threshold),
    )
