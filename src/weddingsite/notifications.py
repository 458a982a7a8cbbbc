"""SNS-driven notification flow.

comment-created event -> notification manager looks up subscribers and the
comment, publishes one email message per recipient -> email dispatcher sends
each message over SMTP.

Both handlers process records independently: a failing record is logged and
the rest of the batch still runs.
"""

import json
import logging
from typing import Iterable, Iterator, List
from urllib.parse import quote

from weddingsite import emails
from weddingsite.comments import get_comment
from weddingsite.mailer import MailMessage
from weddingsite.models import COMMENT_CREATED, COMMENT_NOTIFICATION, CommentEvent, EmailNotificationMessage
from weddingsite.subscriptions import list_subscriptions
from weddingsite.utils import format_italian_datetime, parse_iso

logger = logging.getLogger(__name__)


def sns_messages(event: dict) -> Iterator[str]:
    for record in event.get("Records") or []:
        yield (record.get("Sns") or {}).get("Message", "")


def recipients_for(subscriber_emails: Iterable[str], owner_emails: Iterable[str]) -> List[str]:
    """Subscribers then owners, without blanks or duplicates (case-insensitive)."""
    seen = set()
    recipients = []
    for email in list(subscriber_emails) + list(owner_emails):
        normalized = (email or "").strip().lower()
        if normalized and normalized not in seen:
            seen.add(normalized)
            recipients.append(normalized)
    return recipients


def unsubscribe_link(api_domain: str, photo_id: str, email: str) -> str:
    return f"{api_domain}/photos/{quote(photo_id, safe='')}/subscriptions/{quote(email, safe='')}"


def photo_link(public_site: str, photo_id: str) -> str:
    return f"{public_site}/our-story?{quote(photo_id, safe='')}"


def build_comment_notification(comment, recipient: str, settings) -> EmailNotificationMessage:
    created_at = format_italian_datetime(parse_iso(comment.created_at))
    links = dict(
        unsubscribe_link=unsubscribe_link(settings.api_domain, comment.photo_id, recipient),
        photo_link=photo_link(settings.public_site, comment.photo_id),
    )
    return EmailNotificationMessage(
        type=COMMENT_NOTIFICATION,
        to=[recipient],
        subject=emails.COMMENT_SUBJECT,
        text=emails.comment_notification_text(comment.author_name, comment.content, created_at, **links),
        html=emails.comment_notification_html(comment.author_name, comment.content, created_at, **links),
    )


def notify_comment_created(event: CommentEvent, services) -> int:
    """Fan a new comment out to its photo's subscribers and the owners.

    Returns:
        Number of email messages published.
    """
    settings = services.settings
    subscribers = list_subscriptions(services.subscriptions, event.photo_id)
    if not subscribers:
        logger.debug("No subscribers for photo %s", event.photo_id)

    recipients = recipients_for((s.email for s in subscribers), settings.owner_emails)

    comment = get_comment(services.comments, event.comment_id, settings.comments_index)
    if comment is None:
        logger.info("Comment with id %s not found", event.comment_id)
        return 0

    published = 0
    for recipient in recipients:
        message = build_comment_notification(comment, recipient, settings)
        services.publisher.publish(settings.email_topic_arn, message.to_message())
        published += 1

    logger.info("Published %d email notifications for photo %s", published, event.photo_id)
    return published


def handle_notification_event(event: dict, context, services) -> None:
    """SNS subscriber on the comments topic."""
    for raw in sns_messages(event):
        try:
            comment_event = CommentEvent.from_message(json.loads(raw))
            if comment_event.type == COMMENT_CREATED:
                notify_comment_created(comment_event, services)
            else:
                logger.info("Ignoring unsupported event type: %s", comment_event.type)
                continue
            logger.info("Event of type %s handled successfully", comment_event.type)
        except Exception:
            logger.exception("Failed to handle comment event")


def handle_email_dispatch(event: dict, context, services) -> None:
    """SNS subscriber on the email topic: sends each queued message."""
    mailer = services.mailer
    for raw in sns_messages(event):
        try:
            payload = EmailNotificationMessage.from_message(json.loads(raw))
            logger.info("Sending %s email to: %s", payload.type or "untyped", ", ".join(payload.to))
            mailer.send(MailMessage(
                from_address=mailer.from_address,
                to=payload.to,
                subject=payload.subject,
                text=payload.text,
                html=payload.html,
            ))
            logger.info("Email sent successfully")
        except Exception:
            logger.exception("Failed to send email")
