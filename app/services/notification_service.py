"""Notification dispatch for report and travel request transitions.

The engine decides what to send; this module records the in-app
notification and optionally emails it. Dispatch happens after the
transition has been committed and a failure is logged, never raised.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional, Protocol

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.email_service import email_service
from app.models.notification import Notification, NotificationEntity, NotificationKind

logger = logging.getLogger(__name__)


@dataclass
class NotificationEvent:
    kind: NotificationKind
    entity_type: NotificationEntity
    entity_id: int
    recipient_user_id: Optional[int]
    title: str
    message: str
    action_url: Optional[str] = None


class NotificationDispatcher(Protocol):
    def dispatch(self, db: Session, event: NotificationEvent) -> bool:
        ...


class DatabaseNotificationDispatcher:
    """Stores an in-app notification and emails it when an address is known.

    ``email_resolver`` maps a user id to an email address; it belongs to the
    identity service, so without one only the in-app record is written.
    """

    def __init__(self, email_resolver: Optional[Callable[[int], Optional[str]]] = None):
        self.email_resolver = email_resolver

    def dispatch(self, db: Session, event: NotificationEvent) -> bool:
        notification = Notification(
            kind=event.kind,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            recipient_user_id=event.recipient_user_id,
            title=event.title,
            message=event.message,
            action_url=event.action_url,
            sent_at=datetime.utcnow(),
        )
        db.add(notification)
        db.commit()

        if settings.SEND_EMAILS and self.email_resolver and event.recipient_user_id:
            to_email = self.email_resolver(event.recipient_user_id)
            if to_email and not email_service.send_notification_email(
                to_email=to_email,
                title=event.title,
                message=event.message,
                action_url=event.action_url,
            ):
                notification.failed_at = datetime.utcnow()
                notification.error_message = f"Email delivery to {to_email} failed"
                db.commit()
                return False

        logger.info(
            f"Notification '{event.kind.value}' for {event.entity_type.value} {event.entity_id} "
            f"sent to user {event.recipient_user_id}"
        )
        return True


notification_dispatcher = DatabaseNotificationDispatcher()


def dispatch_events(
    db: Session,
    events: Iterable[NotificationEvent],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> int:
    """Send events after a committed transition; returns how many succeeded."""
    dispatcher = dispatcher or notification_dispatcher
    sent = 0
    for event in events:
        try:
            if dispatcher.dispatch(db, event):
                sent += 1
        except Exception as e:
            db.rollback()
            logger.error(
                f"Failed to send '{event.kind.value}' notification for "
                f"{event.entity_type.value} {event.entity_id}: {str(e)}"
            )
    return sent
