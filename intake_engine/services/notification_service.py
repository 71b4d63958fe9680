# intake_engine/services/notification_service.py
"""
Notification messages produced by allocation decisions, and their dispatch.

Services only *build* OutboundNotification values while their unit of work
runs. Dispatch happens after commit (usually as a FastAPI background task),
so a slow or failing channel can neither block nor roll back an allocation.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional
from uuid import UUID

from intake_engine.models.admission import Admission
from intake_engine.models.patient import Patient
from intake_engine.models.ward import Bed, Ward
from intake_engine.notifications.base import NotificationSink

logger = logging.getLogger(__name__)

URGENCY_PRIORITY = {
    "emergency": "urgent",
    "urgent": "high",
}


@dataclass(frozen=True)
class OutboundNotification:
    recipient_id: UUID
    title: str
    message: str
    related_entity_type: str
    related_entity_id: UUID
    notification_type: str = "info"
    priority: str = "normal"
    sender_id: Optional[UUID] = None


def dispatch_notifications(sink: NotificationSink, notifications: Iterable[OutboundNotification]) -> int:
    """
    Send each notification through ``sink``. Logging must never break main flow:
    failures are logged as warnings and skipped. Returns how many were sent.
    """
    sent = 0
    for notif in notifications:
        try:
            sink.send(
                notif.recipient_id,
                notif.title,
                notif.message,
                notif.related_entity_type,
                notif.related_entity_id,
                notification_type=notif.notification_type,
                priority=notif.priority,
                sender_id=notif.sender_id,
            )
            sent += 1
        except Exception as exc:
            logger.warning(
                "[NOTIFICATION ERROR] Failed to deliver %s to %s for %s %s: %s",
                notif.notification_type,
                notif.recipient_id,
                notif.related_entity_type,
                notif.related_entity_id,
                exc,
                exc_info=True,
            )
    return sent


def _patient_label(patient: Patient) -> str:
    return f"{patient.full_name} ({patient.patient_number})"


def admission_requested_notification(
    admission: Admission,
    patient: Patient,
    ward: Ward,
    doctor_name: str,
) -> Optional[OutboundNotification]:
    """Tell the ward admin a new request is waiting. None if the ward has no admin."""
    if ward.admin_user_id is None:
        return None
    return OutboundNotification(
        recipient_id=ward.admin_user_id,
        sender_id=admission.requested_by,
        title=f"New Admission Request - {patient.full_name}",
        message=(
            f"Dr. {doctor_name} has requested admission for patient {_patient_label(patient)} "
            f"to {ward.name}.\n\nReason: {admission.admission_reason}\n"
            f"Urgency: {admission.urgency.upper()}\nAdmission #: {admission.admission_number}"
        ),
        notification_type="admission_request",
        priority=URGENCY_PRIORITY.get(admission.urgency, "normal"),
        related_entity_type="admission",
        related_entity_id=admission.id,
    )


def admission_decided_notifications(
    admission: Admission,
    patient: Patient,
    ward: Ward,
    bed: Optional[Bed],
) -> list[OutboundNotification]:
    """
    One message to the requesting doctor, plus one to the assigned ward
    doctor when approval named one.
    """
    approved = admission.status.value == "approved"
    decision = "approved" if approved else "rejected"
    message = f"Admission for {_patient_label(patient)} has been {decision}. Ward: {ward.name}"
    if bed is not None:
        message += f", Bed: {bed.bed_number}"
    if admission.decision_notes:
        message += f"\nNotes: {admission.decision_notes}"

    notifications = [
        OutboundNotification(
            recipient_id=admission.requested_by,
            sender_id=admission.decided_by,
            title=f"Admission {decision.title()}",
            message=message,
            notification_type=f"admission_{decision}",
            related_entity_type="admission",
            related_entity_id=admission.id,
        )
    ]
    if approved and admission.assigned_doctor_id is not None:
        bed_text = f", bed {bed.bed_number}" if bed is not None else ""
        notifications.append(
            OutboundNotification(
                recipient_id=admission.assigned_doctor_id,
                sender_id=admission.decided_by,
                title="New Patient Assigned",
                message=f"{_patient_label(patient)} has been admitted to {ward.name}{bed_text} under your care.",
                notification_type="admission_assigned",
                related_entity_type="admission",
                related_entity_id=admission.id,
            )
        )
    return notifications
