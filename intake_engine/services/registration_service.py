# intake_engine/services/registration_service.py
"""
Patient registration: find-or-create the patient, open a visit, issue a
queue token and pick a doctor.

Order of work:
    1. validate input (no mutation on failure)
    2. resolve identity (read-only)
    3. reserve numbers (each in its own short counter transaction)
    4. pick the least-loaded doctor (read-only)
    5. write patient / visit / token in one unit of work

Reserved numbers that end up unused because a later step failed are skipped,
never reissued. A failed registration is not retried here; callers retry,
and a retry with the same phone / ID resolves to the same patient.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from intake_engine.core.config import get_settings
from intake_engine.core.database import storage_errors, unit_of_work
from intake_engine.core.exceptions import NotFound, ValidationError
from intake_engine.models.department import Department
from intake_engine.models.patient import Patient
from intake_engine.models.token import Token, TokenStatus
from intake_engine.models.visit import Visit, VisitPriority, VisitStatus
from intake_engine.services.assignment_service import assign_doctor
from intake_engine.services.identity_service import (
    build_match_criteria,
    find_existing_patient,
    merge_contact_fields,
    normalize_national_id,
    normalize_phone,
)
from intake_engine.services.sequence_service import SequenceGenerator
from intake_engine.utils.datetime_utils import Clock, calculate_age
from intake_engine.utils.id_generators import (
    DAILY_WIDTH,
    format_patient_number,
    format_visit_number,
    patient_scope,
    token_scope,
    visit_scope,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "gender",
    "phone",
    "department_id",
    "chief_complaint",
)

DAILY_MAX = 10**DAILY_WIDTH - 1


@dataclass
class RegistrationResult:
    patient: Patient
    visit: Visit
    token: Token
    assigned_doctor_id: Optional[UUID]
    estimated_wait_minutes: int
    is_new_patient: bool

    @property
    def token_number(self) -> int:
        return self.token.token_number


def validate_registration(fields: dict[str, Any]) -> None:
    missing = []
    for name in REQUIRED_FIELDS:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if not isinstance(fields["date_of_birth"], date):
        raise ValidationError("date_of_birth must be a date")
    if not normalize_phone(fields["phone"]):
        raise ValidationError("phone must contain digits")

    priority = fields.get("priority") or VisitPriority.NORMAL.value
    if priority not in {p.value for p in VisitPriority}:
        raise ValidationError(f"Unknown priority: {priority}")


def estimate_wait_minutes(token_number: int) -> int:
    return token_number * get_settings().minutes_per_token


def _new_patient(fields: dict[str, Any], patient_number: str, today: date) -> Patient:
    return Patient(
        patient_number=patient_number,
        first_name=fields["first_name"].strip(),
        last_name=fields["last_name"].strip(),
        father_name=fields.get("father_name"),
        date_of_birth=fields["date_of_birth"],
        age=calculate_age(fields["date_of_birth"], today),
        gender=fields["gender"],
        marital_status=fields.get("marital_status"),
        occupation=fields.get("occupation"),
        national_id=fields.get("national_id"),
        national_id_normalized=normalize_national_id(fields.get("national_id")),
        phone=fields["phone"],
        phone_normalized=normalize_phone(fields["phone"]),
        email=fields.get("email"),
        address=fields.get("address"),
        city=fields.get("city"),
        emergency_contact=fields.get("emergency_contact"),
        blood_group=fields.get("blood_group"),
        allergies=fields.get("allergies"),
        medical_history=fields.get("medical_history"),
    )


def register_patient(
    db: Session,
    fields: dict[str, Any],
    *,
    sequences: SequenceGenerator,
    clock: Clock,
) -> RegistrationResult:
    """
    Register an arrival.

    ``fields`` carries the registration form: the REQUIRED_FIELDS plus
    optional demographics, contact fields, ``national_id``, ``priority``,
    ``symptoms``, ``visit_type`` and ``force_new``.
    """
    validate_registration(fields)

    now = clock.now()
    today = clock.today()

    with storage_errors(db):
        department = db.query(Department).filter(Department.id == fields["department_id"]).first()
        if not department or not department.is_active:
            raise NotFound("Department not found")

        criteria = build_match_criteria(
            fields.get("phone"),
            fields.get("national_id"),
            force_new=bool(fields.get("force_new")),
        )
        existing = find_existing_patient(db, criteria) if criteria is not None else None

        patient_number = None
        if existing is None:
            patient_number = format_patient_number(
                today, sequences.next_value(patient_scope(today), max_value=DAILY_MAX)
            )
        visit_number = format_visit_number(today, sequences.next_value(visit_scope(today), max_value=DAILY_MAX))
        token_number = sequences.next_value(token_scope(department.id, today), max_value=DAILY_MAX)

        doctor_id = assign_doctor(db, department.id, today)

    with unit_of_work(db):
        if existing is not None:
            patient = existing
            changed = merge_contact_fields(patient, fields)
            if changed:
                logger.info("Updated contact fields %s on patient %s", changed, patient.patient_number)
        else:
            patient = _new_patient(fields, patient_number, today)
            db.add(patient)
            db.flush()

        visit = Visit(
            visit_number=visit_number,
            patient_id=patient.id,
            department_id=department.id,
            assigned_doctor_id=doctor_id,
            visit_type=fields.get("visit_type") or "opd",
            chief_complaint=fields["chief_complaint"].strip(),
            symptoms=fields.get("symptoms"),
            status=VisitStatus.WAITING,
            priority=VisitPriority(fields.get("priority") or VisitPriority.NORMAL.value),
            visit_date=today,
            checkin_time=now,
        )
        db.add(visit)
        db.flush()

        token = Token(
            token_number=token_number,
            visit_id=visit.id,
            department_id=department.id,
            patient_id=patient.id,
            assigned_doctor_id=doctor_id,
            status=TokenStatus.WAITING,
            issue_date=today,
            issue_time=now,
        )
        db.add(token)

    for obj in (patient, visit, token):
        db.refresh(obj)

    logger.info(
        "Registered %s patient %s: visit %s, token %s, doctor %s",
        "new" if existing is None else "returning",
        patient.patient_number,
        visit.visit_number,
        token_number,
        doctor_id,
    )
    return RegistrationResult(
        patient=patient,
        visit=visit,
        token=token,
        assigned_doctor_id=doctor_id,
        estimated_wait_minutes=estimate_wait_minutes(token_number),
        is_new_patient=existing is None,
    )
