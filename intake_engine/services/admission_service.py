# intake_engine/services/admission_service.py
"""
Admission workflow.

    submit:   -> pending
    decide:   pending -> approved | rejected      (ward admin of the target ward)
    discharge: approved -> discharged              (releases the bed)

Approved and rejected are terminal for decisions: deciding again is a
StateConflict and changes nothing.

Approval with a bed is one unit of work: claim the bed, decrement the ward
counter, bind the bed and flip the admission. Each write is conditional on
the state read beforehand, and any failure rolls all of them back.
Notifications are returned to the caller and dispatched after commit.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from intake_engine.core.config import get_settings
from intake_engine.core.database import storage_errors, unit_of_work
from intake_engine.core.exceptions import (
    BedUnavailable,
    NotFound,
    StateConflict,
    Unauthorized,
    ValidationError,
)
from intake_engine.models.admission import (
    Admission,
    AdmissionStatus,
    AdmissionType,
    PENDING_EQUIVALENT_STATUSES,
)
from intake_engine.models.user import User, UserRole
from intake_engine.models.visit import Visit
from intake_engine.models.ward import Bed, BedStatus, Ward
from intake_engine.services.bed_ledger_service import choose_ward, claim_bed, release_bed
from intake_engine.services.notification_service import (
    OutboundNotification,
    admission_decided_notifications,
    admission_requested_notification,
)
from intake_engine.services.sequence_service import SequenceGenerator
from intake_engine.utils.datetime_utils import Clock
from intake_engine.utils.id_generators import ADMISSION_WIDTH, admission_scope, format_admission_number
from intake_engine.utils.retry import retry_transient

logger = logging.getLogger(__name__)

ACTIONS = ("approve", "reject")
URGENCIES = ("normal", "urgent", "emergency")


@dataclass
class AdmissionOutcome:
    admission: Admission
    notifications: list[OutboundNotification] = field(default_factory=list)


def _load_admission(db: Session, admission_id: UUID) -> Admission:
    admission = (
        db.query(Admission)
        .options(joinedload(Admission.patient), joinedload(Admission.ward))
        .populate_existing()
        .filter(Admission.id == admission_id)
        .first()
    )
    if not admission:
        raise NotFound("Admission not found")
    return admission


def _require_active_doctor(db: Session, user_id: UUID, label: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound(f"{label} not found")
    if user.role != UserRole.DOCTOR or not user.is_active:
        raise ValidationError(f"{label} must be an active doctor.")
    return user


def _require_ward_admin(admission: Admission, ward_admin_id: UUID) -> None:
    if admission.ward.admin_user_id is None or admission.ward.admin_user_id != ward_admin_id:
        raise Unauthorized("You are not the administrator of this admission's ward.")


def _require_pending(admission: Admission) -> None:
    if admission.status not in PENDING_EQUIVALENT_STATUSES:
        raise StateConflict(f"Admission is already {admission.status.value}.")


def _mark_decided(
    db: Session,
    admission_id: UUID,
    values: dict,
) -> None:
    """Conditional status write; loses cleanly to a concurrent decision."""
    updated = (
        db.query(Admission)
        .filter(
            Admission.id == admission_id,
            Admission.status.in_(PENDING_EQUIVALENT_STATUSES),
        )
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        raise StateConflict("Admission was decided by someone else.")


def submit_admission_request(
    db: Session,
    *,
    visit_id: UUID,
    requested_by: UUID,
    admission_reason: str,
    sequences: SequenceGenerator,
    clock: Clock,
    ward_id: Optional[UUID] = None,
    ward_type: Optional[str] = None,
    urgency: str = "normal",
    notes: Optional[str] = None,
    diagnosis: Optional[str] = None,
    treatment_plan: Optional[str] = None,
) -> AdmissionOutcome:
    """
    Create a pending admission for the visit's patient.

    The ward is either given explicitly or chosen by type (the active ward
    of that type with the most free beds). ``diagnosis`` and
    ``treatment_plan`` carry the consultation's findings onto the request.
    """
    if not admission_reason or not admission_reason.strip():
        raise ValidationError("admission_reason is required")
    if urgency not in URGENCIES:
        raise ValidationError(f"urgency must be one of {', '.join(URGENCIES)}")

    with storage_errors(db):
        doctor = db.query(User).filter(User.id == requested_by).first()
        if not doctor:
            raise NotFound("Requesting doctor not found")
        if doctor.role != UserRole.DOCTOR or not doctor.is_active:
            raise Unauthorized("Only active doctors can request admissions.")

        visit = db.query(Visit).filter(Visit.id == visit_id).first()
        if not visit:
            raise NotFound("Visit not found")

        if ward_id is not None:
            ward = db.query(Ward).filter(Ward.id == ward_id).first()
            if not ward or not ward.is_active:
                raise NotFound("Ward not found")
        else:
            ward = choose_ward(db, ward_type or "general")

        today = clock.today()
        seq = sequences.next_value(admission_scope(today), max_value=10**ADMISSION_WIDTH - 1)

        admission = Admission(
            admission_number=format_admission_number(today, seq),
            patient_id=visit.patient_id,
            visit_id=visit.id,
            ward_id=ward.id,
            requested_by=doctor.id,
            admission_type=AdmissionType.EMERGENCY if urgency == "emergency" else AdmissionType.ELECTIVE,
            urgency=urgency,
            admission_reason=admission_reason.strip(),
            diagnosis=diagnosis or None,
            treatment_plan=treatment_plan or None,
            notes=notes,
            status=AdmissionStatus.PENDING,
            created_at=clock.now(),
        )
        with unit_of_work(db):
            db.add(admission)

        admission = _load_admission(db, admission.id)

    logger.info("Admission %s requested for ward %s", admission.admission_number, ward.id)

    notification = admission_requested_notification(admission, admission.patient, admission.ward, doctor.full_name)
    return AdmissionOutcome(admission=admission, notifications=[notification] if notification else [])


def _approve_once(
    db: Session,
    *,
    admission_id: UUID,
    ward_admin_id: UUID,
    bed_id: Optional[UUID],
    assigned_doctor_id: Optional[UUID],
    notes: Optional[str],
    now: datetime,
) -> AdmissionOutcome:
    admission = _load_admission(db, admission_id)
    _require_pending(admission)
    _require_ward_admin(admission, ward_admin_id)

    if assigned_doctor_id is not None:
        _require_active_doctor(db, assigned_doctor_id, "Assigned doctor")

    bed: Optional[Bed] = None
    if bed_id is not None:
        bed = db.query(Bed).populate_existing().filter(Bed.id == bed_id).first()
        if not bed:
            raise NotFound("Bed not found")
        if bed.ward_id != admission.ward_id:
            raise ValidationError("Bed does not belong to the admission's ward.")
        if bed.status != BedStatus.AVAILABLE:
            raise BedUnavailable(f"Bed {bed.bed_number} is {bed.status.value}.")

    values = {
        "status": AdmissionStatus.APPROVED,
        "bed_id": bed_id,
        "decided_by": ward_admin_id,
        "decided_at": now,
        "decision_notes": notes,
    }
    if assigned_doctor_id is not None:
        values["assigned_doctor_id"] = assigned_doctor_id

    with unit_of_work(db):
        if bed_id is not None:
            claim_bed(db, bed_id, admission.patient_id)
        _mark_decided(db, admission_id, values)

    admission = _load_admission(db, admission_id)
    if bed is not None:
        db.refresh(bed)
    logger.info("Admission %s approved by %s (bed=%s)", admission.admission_number, ward_admin_id, bed_id)
    return AdmissionOutcome(
        admission=admission,
        notifications=admission_decided_notifications(admission, admission.patient, admission.ward, bed),
    )


def _reject_once(
    db: Session,
    *,
    admission_id: UUID,
    ward_admin_id: UUID,
    notes: Optional[str],
    now: datetime,
) -> AdmissionOutcome:
    admission = _load_admission(db, admission_id)
    _require_pending(admission)
    _require_ward_admin(admission, ward_admin_id)

    with unit_of_work(db):
        _mark_decided(
            db,
            admission_id,
            {
                "status": AdmissionStatus.REJECTED,
                "decided_by": ward_admin_id,
                "decided_at": now,
                "decision_notes": notes,
            },
        )

    admission = _load_admission(db, admission_id)
    logger.info("Admission %s rejected by %s", admission.admission_number, ward_admin_id)
    return AdmissionOutcome(
        admission=admission,
        notifications=admission_decided_notifications(admission, admission.patient, admission.ward, None),
    )


def decide_admission(
    db: Session,
    *,
    admission_id: UUID,
    action: str,
    ward_admin_id: UUID,
    clock: Clock,
    bed_id: Optional[UUID] = None,
    assigned_doctor_id: Optional[UUID] = None,
    notes: Optional[str] = None,
) -> AdmissionOutcome:
    """
    Approve or reject an admission on behalf of the ward admin.

    Raises NotFound, Unauthorized, StateConflict, BedUnavailable or
    ValidationError; transient storage errors are retried a bounded number
    of times, re-reading state on every attempt.
    """
    if action not in ACTIONS:
        raise ValidationError(f"action must be one of {', '.join(ACTIONS)}")

    settings = get_settings()

    def attempt() -> AdmissionOutcome:
        now = clock.now()
        with storage_errors(db):
            if action == "approve":
                return _approve_once(
                    db,
                    admission_id=admission_id,
                    ward_admin_id=ward_admin_id,
                    bed_id=bed_id,
                    assigned_doctor_id=assigned_doctor_id,
                    notes=notes,
                    now=now,
                )
            return _reject_once(
                db,
                admission_id=admission_id,
                ward_admin_id=ward_admin_id,
                notes=notes,
                now=now,
            )

    return retry_transient(
        attempt,
        attempts=settings.storage_max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
        label=f"admission {admission_id} {action}",
    )


def discharge_admission(
    db: Session,
    *,
    admission_id: UUID,
    actor_id: UUID,
    clock: Clock,
    notes: Optional[str] = None,
) -> Admission:
    """
    approved -> discharged, releasing the bound bed (ward counter +1) in the
    same unit of work. Allowed for the ward admin or the assigned doctor.
    """
    settings = get_settings()

    def attempt() -> Admission:
        with storage_errors(db):
            admission = _load_admission(db, admission_id)
            if admission.status != AdmissionStatus.APPROVED:
                raise StateConflict(
                    f"Only approved admissions can be discharged (status: {admission.status.value})."
                )
            if actor_id not in (admission.ward.admin_user_id, admission.assigned_doctor_id):
                raise Unauthorized("Only the ward admin or the assigned doctor can discharge this patient.")

            values = {"status": AdmissionStatus.DISCHARGED, "discharged_at": clock.now()}
            if notes:
                values["decision_notes"] = notes

            with unit_of_work(db):
                if admission.bed_id is not None:
                    release_bed(db, admission.bed_id)
                updated = (
                    db.query(Admission)
                    .filter(Admission.id == admission_id, Admission.status == AdmissionStatus.APPROVED)
                    .update(values, synchronize_session=False)
                )
                if updated != 1:
                    raise StateConflict("Admission was discharged by someone else.")

            logger.info("Admission %s discharged by %s", admission.admission_number, actor_id)
            return _load_admission(db, admission_id)

    return retry_transient(
        attempt,
        attempts=settings.storage_max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
        label=f"admission {admission_id} discharge",
    )


def list_pending_requests(db: Session, *, ward_admin_id: Optional[UUID] = None) -> list[Admission]:
    """
    Admissions awaiting a ward admin decision, newest first.

    Matches every status in PENDING_EQUIVALENT_STATUSES, which still includes
    the legacy "active" rows.
    """
    query = (
        db.query(Admission)
        .options(
            joinedload(Admission.patient),
            joinedload(Admission.requesting_doctor),
            joinedload(Admission.ward),
        )
        .filter(Admission.status.in_(PENDING_EQUIVALENT_STATUSES))
    )
    if ward_admin_id is not None:
        query = query.join(Ward, Admission.ward_id == Ward.id).filter(Ward.admin_user_id == ward_admin_id)
    with storage_errors(db):
        return query.order_by(Admission.created_at.desc()).all()


def list_assigned_admissions(
    db: Session,
    *,
    doctor_ids: Optional[list[UUID]] = None,
) -> dict[UUID, list[Admission]]:
    """Approved admissions grouped by their assigned ward doctor."""
    query = (
        db.query(Admission)
        .options(joinedload(Admission.patient), joinedload(Admission.ward), joinedload(Admission.bed))
        .filter(
            Admission.status == AdmissionStatus.APPROVED,
            Admission.assigned_doctor_id.is_not(None),
        )
    )
    if doctor_ids:
        query = query.filter(Admission.assigned_doctor_id.in_(doctor_ids))

    with storage_errors(db):
        admissions = query.order_by(Admission.decided_at.desc()).all()

    by_doctor: dict[UUID, list[Admission]] = {doctor_id: [] for doctor_id in doctor_ids or []}
    for admission in admissions:
        by_doctor.setdefault(admission.assigned_doctor_id, []).append(admission)
    return by_doctor
