# intake_engine/api/v1/endpoints/patients.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from intake_engine.core.database import get_db
from intake_engine.dependencies.providers import get_engine_clock, get_sequence_generator
from intake_engine.schemas.patient import (
    PatientRegistrationRequest,
    PatientSummary,
    RegistrationResponse,
    VisitSummary,
)
from intake_engine.services.identity_service import search_patients
from intake_engine.services.registration_service import register_patient
from intake_engine.services.sequence_service import SequenceGenerator
from intake_engine.utils.datetime_utils import Clock

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: PatientRegistrationRequest,
    db: Session = Depends(get_db),
    sequences: SequenceGenerator = Depends(get_sequence_generator),
    clock: Clock = Depends(get_engine_clock),
) -> RegistrationResponse:
    """
    Register an arrival: find-or-create the patient, open a visit, issue a
    token and assign the least-loaded doctor.

    Missing required fields -> 400 ValidationError, nothing is written.
    """
    fields = payload.model_dump()
    fields["priority"] = payload.priority.value
    result = register_patient(db, fields, sequences=sequences, clock=clock)
    return RegistrationResponse(
        patient=PatientSummary.model_validate(result.patient),
        visit=VisitSummary.model_validate(result.visit),
        token_number=result.token_number,
        assigned_doctor_id=result.assigned_doctor_id,
        estimated_wait_minutes=result.estimated_wait_minutes,
        is_new_patient=result.is_new_patient,
    )


@router.get("/search", response_model=list[PatientSummary])
def search(
    phone: Optional[str] = Query(None),
    national_id: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[PatientSummary]:
    patients = search_patients(db, phone=phone, national_id=national_id, limit=limit)
    return [PatientSummary.model_validate(p) for p in patients]
