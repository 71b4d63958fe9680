# intake_engine/notifications/base.py
from typing import Optional
from uuid import UUID


class NotificationSink:
    """
    Delivery channel for notifications.

    ``send`` may raise; callers go through
    services.notification_service.dispatch_notifications, which logs and
    swallows delivery failures so they never affect committed allocations.
    """

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
        raise NotImplementedError
