"""Tests for contest escalation, window enforcement and vote tallying."""

from datetime import datetime, timedelta, timezone

import pytest

from campusfix.exceptions import ValidationError, WindowExpiredError
from campusfix.models import VoteType
from campusfix.services.contest_service import (
    CONTEST_WINDOW,
    REVALIDATION_WINDOW,
    ensure_window_open,
    revalidation_outcome,
    should_escalate,
    tally_votes,
    window_end,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class TestWindows:
    def test_window_end_is_seven_days_out(self):
        assert window_end(NOW, 7) == NOW + timedelta(days=7)

    def test_open_window_passes(self):
        ensure_window_open(CONTEST_WINDOW, NOW + timedelta(seconds=1), NOW)

    def test_closes_exactly_at_end(self):
        with pytest.raises(WindowExpiredError):
            ensure_window_open(CONTEST_WINDOW, NOW, NOW)

    def test_expired_message_says_how_long_ago(self):
        with pytest.raises(WindowExpiredError) as exc_info:
            ensure_window_open(CONTEST_WINDOW, NOW - timedelta(days=2), NOW)
        assert exc_info.value.message == "The contest window closed 2 days ago"
        assert exc_info.value.window == "contest"

    def test_expired_hours_ago(self):
        with pytest.raises(WindowExpiredError) as exc_info:
            ensure_window_open(REVALIDATION_WINDOW, NOW - timedelta(hours=5), NOW)
        assert exc_info.value.message == "The revalidation window closed 5 hours ago"

    def test_unopened_window_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            ensure_window_open(CONTEST_WINDOW, None, NOW)

    def test_naive_end_treated_as_utc(self):
        ensure_window_open(CONTEST_WINDOW, (NOW + timedelta(hours=1)).replace(tzinfo=None), NOW)


class TestEscalation:
    def test_escalates_at_threshold(self):
        assert should_escalate(3, 3) is True

    def test_not_before_threshold(self):
        assert should_escalate(2, 3) is False


class TestRevalidationOutcome:
    def test_confirm_at_threshold(self):
        assert revalidation_outcome(3, 0, 3) is VoteType.CONFIRM

    def test_reject_at_threshold(self):
        assert revalidation_outcome(2, 3, 3) is VoteType.REJECT

    def test_confirm_checked_first(self):
        assert revalidation_outcome(3, 3, 3) is VoteType.CONFIRM

    def test_undecided(self):
        assert revalidation_outcome(2, 2, 3) is None


class TestTallyVotes:
    def test_counts_each_kind(self):
        tally = tally_votes(["confirm", "reject", "confirm"], 3, NOW)
        assert (tally.confirms, tally.rejects) == (2, 1)
        assert tally.window_end == NOW
        assert tally.decided is False

    def test_decided_tally(self):
        tally = tally_votes(["reject"] * 3, 3)
        assert tally.outcome is VoteType.REJECT
        assert tally.decided is True

    def test_ignores_unknown_vote_types(self):
        tally = tally_votes(["maybe", "confirm"], 3)
        assert (tally.confirms, tally.rejects) == (1, 0)
