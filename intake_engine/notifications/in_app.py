# intake_engine/notifications/in_app.py
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import sessionmaker

from intake_engine.core.config import get_settings
from intake_engine.core.redis import queue_push
from intake_engine.models.notification import Notification, NotificationStatus
from intake_engine.notifications.base import NotificationSink
from intake_engine.schemas.notification import NotificationPayload

logger = logging.getLogger(__name__)


class InAppNotificationSink(NotificationSink):
    """
    Persist the notification for in-app display and push a copy onto the
    Redis outbound queue for real-time fan-out.

    Without Redis (degraded mode) the row stays ``pending``; the in-app inbox
    still shows it.
    """

    def __init__(self, session_factory: sessionmaker, queue_key: Optional[str] = None):
        self.session_factory = session_factory
        self.queue_key = queue_key or get_settings().notification_queue_key

    def send(
        self,
        recipient_id: UUID,
        title: str,
        message: str,
        related_entity_type: Optional[str],
        related_entity_id: Optional[UUID],
        *,
        notification_type: str = "info",
        priority: str = "normal",
        sender_id: Optional[UUID] = None,
    ) -> None:
        db = self.session_factory()
        try:
            notif = Notification(
                recipient_id=recipient_id,
                sender_id=sender_id,
                title=title,
                message=message[:2000],
                notification_type=notification_type,
                priority=priority,
                related_entity_type=related_entity_type,
                related_entity_id=related_entity_id,
                status=NotificationStatus.PENDING,
            )
            db.add(notif)
            # The row must exist before any consumer can see the queued copy.
            db.commit()

            payload = NotificationPayload.model_validate(notif).model_dump_json()
            if queue_push(self.queue_key, payload):
                notif.status = NotificationStatus.SENT
                db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
