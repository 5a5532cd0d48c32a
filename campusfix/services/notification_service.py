"""Records notifications for issue lifecycle events.

Only the trigger, recipient and template are decided here; delivery is
someone else's job.
"""

from datetime import datetime

from campusfix.logging_config import get_logger
from campusfix.models import Issue, Notification, NotificationType

logger = get_logger(__name__)

T = NotificationType

TEMPLATES: dict[NotificationType, str] = {
    T.APPROVED: 'Your issue "{title}" was approved and is now open.',
    T.REJECTED: 'Your issue "{title}" was rejected.{reason}',
    T.RESOLVED: 'Your issue "{title}" was marked resolved.',
    T.CONTEST_RECEIVED: 'A student contested the outcome of "{title}" ({count}/{threshold}).',
    T.CONTEST_ESCALATED: 'The outcome of "{title}" was escalated for revalidation.',
    T.CONTEST_ACCEPTED: 'The contest on "{title}" was accepted; the issue is open again.',
    T.CONTEST_REJECTED: 'The contest on "{title}" was dismissed.{reason}',
    T.RE_RESOLVED: 'Your issue "{title}" was re-resolved and is open for revalidation votes.',
    T.FINAL_CLOSED: 'Your issue "{title}" was confirmed resolved and is now closed.',
    T.REOPENED: 'Your issue "{title}" was reopened after revalidation.',
}


def render(notification_type: NotificationType, issue: Issue, **context) -> str:
    """Render a template for an issue. ``reason`` is optional and appended."""
    reason = context.pop("reason", None)
    return TEMPLATES[notification_type].format(
        title=issue.title,
        reason=f" Reason: {reason}" if reason else "",
        **context,
    )


async def notify_creator(
    uow,
    issue: Issue,
    notification_type: NotificationType,
    now: datetime,
    **context,
) -> Notification:
    """Queue a notification for the issue's creator."""
    notification = await uow.notifications.create(
        user_id=issue.creator_id,
        issue_id=issue.id,
        notification_type=notification_type.value,
        message=render(notification_type, issue, **context),
        created_at=now,
    )
    logger.info(
        "notification_created",
        user_id=str(issue.creator_id),
        issue_id=str(issue.id),
        notification_type=notification_type.value,
    )
    return notification
