# intake_engine/api/v1/endpoints/admissions.py
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from intake_engine.api.v1.endpoints.wards import ward_occupancy
from intake_engine.background.tasks import enqueue_notifications
from intake_engine.core.database import get_db
from intake_engine.dependencies.providers import (
    get_engine_clock,
    get_notification_sink,
    get_sequence_generator,
)
from intake_engine.models.admission import Admission
from intake_engine.notifications.base import NotificationSink
from intake_engine.schemas.admission import (
    AdmissionDecisionRequest,
    AdmissionRequestCreate,
    AdmissionResponse,
    AssignedAdmissionsGroup,
    DischargeRequest,
    PendingAdmissionsResponse,
)
from intake_engine.services.admission_service import (
    decide_admission,
    discharge_admission,
    list_assigned_admissions,
    list_pending_requests,
    submit_admission_request,
)
from intake_engine.services.bed_ledger_service import list_wards
from intake_engine.services.sequence_service import SequenceGenerator
from intake_engine.utils.datetime_utils import Clock

router = APIRouter()
logger = logging.getLogger(__name__)


def admission_response(admission: Admission) -> AdmissionResponse:
    """Build response with computed display fields."""
    response = AdmissionResponse.model_validate(admission)
    if admission.patient is not None:
        response.patient_name = admission.patient.full_name
        response.patient_number = admission.patient.patient_number
    if admission.ward is not None:
        response.ward_name = admission.ward.name
    if admission.requesting_doctor is not None:
        response.requesting_doctor_name = admission.requesting_doctor.full_name
    return response


@router.post(
    "/request",
    response_model=AdmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
def request_admission(
    payload: AdmissionRequestCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    sequences: SequenceGenerator = Depends(get_sequence_generator),
    clock: Clock = Depends(get_engine_clock),
    sink: NotificationSink = Depends(get_notification_sink),
) -> AdmissionResponse:
    """
    Doctor requests admission for a visit's patient.

    The ward is either given, or chosen by ward_type as the active ward of
    that type with the most free beds.
    """
    outcome = submit_admission_request(
        db,
        visit_id=payload.visit_id,
        requested_by=payload.requested_by,
        admission_reason=payload.admission_reason,
        ward_id=payload.ward_id,
        ward_type=payload.ward_type,
        urgency=payload.urgency,
        notes=payload.notes,
        diagnosis=payload.diagnosis,
        treatment_plan=payload.treatment_plan,
        sequences=sequences,
        clock=clock,
    )
    enqueue_notifications(background_tasks, sink, outcome.notifications)
    return admission_response(outcome.admission)


@router.get("/requests", response_model=PendingAdmissionsResponse)
def get_pending_requests(
    ward_admin_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
) -> PendingAdmissionsResponse:
    """
    Requests awaiting a ward admin decision (pending and legacy "active"),
    together with the occupancy of the admin's wards.
    """
    pending = list_pending_requests(db, ward_admin_id=ward_admin_id)
    wards = list_wards(db, admin_user_id=ward_admin_id)
    return PendingAdmissionsResponse(
        pending_requests=[admission_response(a) for a in pending],
        wards=[ward_occupancy(w) for w in wards],
    )


@router.get("/assigned", response_model=list[AssignedAdmissionsGroup])
def get_assigned_admissions(
    doctor_id: Optional[list[UUID]] = Query(None),
    db: Session = Depends(get_db),
) -> list[AssignedAdmissionsGroup]:
    grouped = list_assigned_admissions(db, doctor_ids=doctor_id)
    return [
        AssignedAdmissionsGroup(
            doctor_id=doc_id,
            admissions=[admission_response(a) for a in admissions],
        )
        for doc_id, admissions in grouped.items()
    ]


@router.post("/{admission_id}/decision", response_model=AdmissionResponse)
def decide(
    admission_id: UUID,
    payload: AdmissionDecisionRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_engine_clock),
    sink: NotificationSink = Depends(get_notification_sink),
) -> AdmissionResponse:
    """
    Ward admin approves (optionally binding a bed and a ward doctor) or
    rejects a pending admission.

    Notifications go out after the decision has committed.
    """
    outcome = decide_admission(
        db,
        admission_id=admission_id,
        action=payload.action,
        ward_admin_id=payload.ward_admin_id,
        bed_id=payload.bed_id,
        assigned_doctor_id=payload.assigned_doctor_id,
        notes=payload.notes,
        clock=clock,
    )
    enqueue_notifications(background_tasks, sink, outcome.notifications)
    return admission_response(outcome.admission)


@router.post("/{admission_id}/discharge", response_model=AdmissionResponse)
def discharge(
    admission_id: UUID,
    payload: DischargeRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_engine_clock),
) -> AdmissionResponse:
    admission = discharge_admission(
        db,
        admission_id=admission_id,
        actor_id=payload.actor_id,
        notes=payload.notes,
        clock=clock,
    )
    return admission_response(admission)
