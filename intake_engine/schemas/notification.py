# intake_engine/schemas/notification.py
from uuid import UUID

from pydantic import BaseModel


class NotificationPayload(BaseModel):
    """Wire format of a notification pushed to the outbound queue."""

    id: UUID
    recipient_id: UUID
    sender_id: UUID | None
    title: str
    message: str
    notification_type: str
    priority: str
    related_entity_type: str | None
    related_entity_id: UUID | None

    class Config:
        from_attributes = True
