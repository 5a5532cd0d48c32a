"""Issue lifecycle state machine.

States: PENDING_APPROVAL → OPEN → IN_REVIEW → RESOLVED, with branches
REJECTED, PENDING_REVALIDATION, RE_RESOLVED and FINAL_CLOSED, and the reopen
path back to OPEN. FINAL_CLOSED is terminal.

Transitions are keyed by trigger so that a caller asks "what does *approve*
do from here?" rather than naming a target status.
"""

from campusfix.exceptions import InvalidStateError
from campusfix.models import IssueStatus

S = IssueStatus

# Map of current_status → list of (target_status, trigger)
VALID_TRANSITIONS: dict[str, list[tuple[str, str]]] = {
    S.PENDING_APPROVAL.value: [
        (S.OPEN.value, "approve"),
        (S.REJECTED.value, "reject"),
    ],
    S.OPEN.value: [
        (S.IN_REVIEW.value, "start_review"),
        (S.RESOLVED.value, "resolve"),
    ],
    S.IN_REVIEW.value: [
        (S.OPEN.value, "return_to_open"),
        (S.RESOLVED.value, "resolve"),
    ],
    S.RESOLVED.value: [
        (S.PENDING_REVALIDATION.value, "escalate"),
    ],
    S.REJECTED.value: [
        (S.PENDING_REVALIDATION.value, "escalate"),
    ],
    S.PENDING_REVALIDATION.value: [
        (S.OPEN.value, "accept_contest"),
        (S.PENDING_REVALIDATION.value, "dismiss_contest"),
        (S.RE_RESOLVED.value, "re_resolve"),
    ],
    S.RE_RESOLVED.value: [
        (S.FINAL_CLOSED.value, "confirm_revalidation"),
        (S.OPEN.value, "reject_revalidation"),
    ],
    S.FINAL_CLOSED.value: [],  # terminal
}

# Human wording for error messages
TRIGGER_ACTIONS: dict[str, str] = {
    "approve": "approve",
    "reject": "reject",
    "start_review": "start reviewing",
    "return_to_open": "return to open",
    "resolve": "resolve",
    "escalate": "escalate",
    "accept_contest": "accept a contest on",
    "dismiss_contest": "dismiss a contest on",
    "re_resolve": "re-resolve",
    "confirm_revalidation": "confirm",
    "reject_revalidation": "reopen",
}

# Status edges an admin may apply through a plain field update
MANUAL_TRIGGERS = frozenset({"start_review", "return_to_open"})

SUPPORTABLE_STATUSES = frozenset(
    {S.PENDING_APPROVAL.value, S.OPEN.value, S.IN_REVIEW.value}
)
CONTESTABLE_STATUSES = frozenset({S.RESOLVED.value, S.REJECTED.value})
CONTESTED_STATUSES = frozenset(
    {
        S.RESOLVED.value,
        S.REJECTED.value,
        S.PENDING_REVALIDATION.value,
        S.RE_RESOLVED.value,
    }
)
RESOLVED_STATUSES = frozenset(
    {S.RESOLVED.value, S.RE_RESOLVED.value, S.FINAL_CLOSED.value}
)
TERMINAL_STATUSES = frozenset({S.FINAL_CLOSED.value})


def _value(status) -> str:
    return status.value if isinstance(status, IssueStatus) else status


def allowed_sources(trigger: str) -> list[str]:
    """Statuses from which a trigger may fire."""
    return [
        source
        for source, edges in VALID_TRANSITIONS.items()
        if any(t == trigger for _, t in edges)
    ]


def next_status(current: str, trigger: str) -> str:
    """Return the status a trigger leads to, raising InvalidStateError if invalid."""
    current = _value(current)
    for target, t in VALID_TRANSITIONS.get(current, []):
        if t == trigger:
            return target
    raise InvalidStateError(
        current, TRIGGER_ACTIONS.get(trigger, trigger), allowed_sources(trigger)
    )


def manual_trigger_for(current: str, target: str) -> str:
    """Resolve a manual status edit to its trigger, raising InvalidStateError."""
    current, target = _value(current), _value(target)
    for candidate, trigger in VALID_TRANSITIONS.get(current, []):
        if candidate == target and trigger in MANUAL_TRIGGERS:
            return trigger
    raise InvalidStateError(current, f"set status to {target} on")


def derive_contested_flag(status: str, contest_count: int) -> bool:
    """contestedFlag is true iff contests are pending on a resolution."""
    return contest_count > 0 and _value(status) in CONTESTED_STATUSES


def is_terminal(status: str) -> bool:
    return _value(status) in TERMINAL_STATUSES
