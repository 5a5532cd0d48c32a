"""Credibility ledger: rule-driven reputation per user, bounded to [0, 100]."""

import enum
from uuid import UUID

from campusfix.logging_config import get_logger

logger = get_logger(__name__)

MIN_CREDIBILITY = 0
MAX_CREDIBILITY = 100


class CredibilityRule(str, enum.Enum):
    SUBMIT_VALID_ISSUE = "SUBMIT_VALID_ISSUE"
    SUPPORT_RESOLVED_ISSUE = "SUPPORT_RESOLVED_ISSUE"
    FAKE_REPORT_PENALTY = "FAKE_REPORT_PENALTY"
    MALICIOUS_CONTEST_PENALTY = "MALICIOUS_CONTEST_PENALTY"


RULE_DELTAS: dict[CredibilityRule, int] = {
    CredibilityRule.SUBMIT_VALID_ISSUE: 5,
    CredibilityRule.SUPPORT_RESOLVED_ISSUE: 2,
    CredibilityRule.FAKE_REPORT_PENALTY: -15,
    CredibilityRule.MALICIOUS_CONTEST_PENALTY: -15,
}


def clamp_credibility(score: int) -> int:
    return max(MIN_CREDIBILITY, min(MAX_CREDIBILITY, score))


async def apply_rule(uow, user_id: UUID, issue_id: UUID, rule: CredibilityRule) -> int | None:
    """
    Apply a credibility rule to a user for an issue.

    Each rule pays out at most once per (user, issue). Returns the new score,
    or None when the rule was already applied.
    """
    if await uow.credibility_log.exists(user_id, issue_id, rule.value):
        logger.debug(
            "credibility_rule_already_applied",
            user_id=str(user_id),
            issue_id=str(issue_id),
            rule=rule.value,
        )
        return None

    before = await uow.users.get_credibility_for_update(user_id)
    new_score = clamp_credibility(before + RULE_DELTAS[rule])
    delta = new_score - before
    await uow.users.set_credibility(user_id, new_score)
    await uow.credibility_log.record(
        user_id=user_id,
        issue_id=issue_id,
        rule=rule.value,
        delta=delta,
        credibility_after=new_score,
    )

    logger.info(
        "credibility_adjusted",
        user_id=str(user_id),
        issue_id=str(issue_id),
        rule=rule.value,
        delta=delta,
        credibility=new_score,
    )
    return new_score


async def reward_resolution(uow, issue) -> None:
    """Reward the creator and every non-creator supporter of a resolved issue."""
    await apply_rule(uow, issue.creator_id, issue.id, CredibilityRule.SUBMIT_VALID_ISSUE)
    for supporter_id in await uow.supports.supporter_ids(issue.id):
        if supporter_id == issue.creator_id:
            continue
        await apply_rule(uow, supporter_id, issue.id, CredibilityRule.SUPPORT_RESOLVED_ISSUE)
