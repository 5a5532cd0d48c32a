"""Unit tests for the issue lifecycle state machine."""

import pytest

from campusfix.exceptions import InvalidStateError
from campusfix.models import IssueStatus
from campusfix.state_machine import (
    VALID_TRANSITIONS,
    allowed_sources,
    derive_contested_flag,
    is_terminal,
    manual_trigger_for,
    next_status,
)

S = IssueStatus


class TestNextStatus:
    def test_approve_from_pending(self):
        assert next_status("PENDING_APPROVAL", "approve") == "OPEN"

    def test_reject_from_pending(self):
        assert next_status("PENDING_APPROVAL", "reject") == "REJECTED"

    def test_resolve_from_open_and_in_review(self):
        assert next_status("OPEN", "resolve") == "RESOLVED"
        assert next_status("IN_REVIEW", "resolve") == "RESOLVED"

    def test_escalate_from_resolved_and_rejected(self):
        assert next_status("RESOLVED", "escalate") == "PENDING_REVALIDATION"
        assert next_status("REJECTED", "escalate") == "PENDING_REVALIDATION"

    def test_contest_decisions(self):
        assert next_status("PENDING_REVALIDATION", "accept_contest") == "OPEN"
        assert next_status("PENDING_REVALIDATION", "dismiss_contest") == "PENDING_REVALIDATION"

    def test_revalidation_outcomes(self):
        assert next_status("RE_RESOLVED", "confirm_revalidation") == "FINAL_CLOSED"
        assert next_status("RE_RESOLVED", "reject_revalidation") == "OPEN"

    def test_accepts_enum_members(self):
        assert next_status(S.PENDING_REVALIDATION, "re_resolve") == "RE_RESOLVED"

    def test_invalid_trigger_raises_with_allowed_sources(self):
        with pytest.raises(InvalidStateError) as exc_info:
            next_status("RESOLVED", "resolve")
        assert exc_info.value.current_status == "RESOLVED"
        assert set(exc_info.value.allowed_from) == {"OPEN", "IN_REVIEW"}
        assert "Cannot resolve an issue that is RESOLVED" in exc_info.value.message

    def test_final_closed_is_terminal(self):
        for trigger in ("approve", "resolve", "escalate", "re_resolve", "reject_revalidation"):
            with pytest.raises(InvalidStateError):
                next_status("FINAL_CLOSED", trigger)
        assert is_terminal("FINAL_CLOSED")
        assert not is_terminal("RESOLVED")


class TestTransitionTable:
    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == {s.value for s in IssueStatus}

    def test_every_target_is_a_known_status(self):
        known = {s.value for s in IssueStatus}
        for edges in VALID_TRANSITIONS.values():
            for target, _ in edges:
                assert target in known

    def test_no_way_out_of_final_closed(self):
        assert VALID_TRANSITIONS["FINAL_CLOSED"] == []

    def test_resolved_never_closes_directly(self):
        assert all(target != "FINAL_CLOSED" for target, _ in VALID_TRANSITIONS["RESOLVED"])

    def test_allowed_sources(self):
        assert set(allowed_sources("escalate")) == {"RESOLVED", "REJECTED"}
        assert allowed_sources("approve") == ["PENDING_APPROVAL"]


class TestManualTrigger:
    def test_open_and_in_review_are_manual(self):
        assert manual_trigger_for("OPEN", "IN_REVIEW") == "start_review"
        assert manual_trigger_for("IN_REVIEW", "OPEN") == "return_to_open"

    def test_workflow_edges_are_not_manual(self):
        with pytest.raises(InvalidStateError):
            manual_trigger_for("OPEN", "RESOLVED")
        with pytest.raises(InvalidStateError):
            manual_trigger_for("PENDING_APPROVAL", "OPEN")

    def test_unknown_edge_rejected(self):
        with pytest.raises(InvalidStateError):
            manual_trigger_for("OPEN", "FINAL_CLOSED")


class TestContestedFlag:
    @pytest.mark.parametrize(
        "status", ["RESOLVED", "REJECTED", "PENDING_REVALIDATION", "RE_RESOLVED"]
    )
    def test_true_when_contests_pending_on_resolution(self, status):
        assert derive_contested_flag(status, 1) is True

    @pytest.mark.parametrize("status", ["PENDING_APPROVAL", "OPEN", "IN_REVIEW", "FINAL_CLOSED"])
    def test_false_outside_contested_statuses(self, status):
        assert derive_contested_flag(status, 2) is False

    def test_false_without_contests(self):
        assert derive_contested_flag("RESOLVED", 0) is False
