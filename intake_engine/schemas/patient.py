# intake_engine/schemas/patient.py
from datetime import date, datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from intake_engine.models.visit import VisitPriority, VisitStatus


class PatientRegistrationRequest(BaseModel):
    """
    Registration form. Required fields are checked by the registration
    service so that every missing field is reported as one ValidationError.
    """

    first_name: str | None = None
    last_name: str | None = None
    father_name: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    marital_status: str | None = None
    occupation: str | None = None
    phone: str | None = None
    national_id: str | None = Field(default=None, validation_alias=AliasChoices("national_id", "cnic"))
    email: str | None = None
    address: str | None = None
    city: str | None = None
    emergency_contact: str | None = None
    blood_group: str | None = None
    allergies: str | None = None
    medical_history: str | None = None

    # Visit
    department_id: UUID | None = None
    chief_complaint: str | None = None
    symptoms: str | None = None
    priority: VisitPriority = VisitPriority.NORMAL
    visit_type: str = "opd"

    force_new: bool = False


class PatientSummary(BaseModel):
    id: UUID
    patient_number: str
    first_name: str
    last_name: str
    date_of_birth: date
    age: int | None
    gender: str
    phone: str | None
    national_id: str | None
    email: str | None
    address: str | None
    city: str | None
    emergency_contact: str | None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class VisitSummary(BaseModel):
    id: UUID
    visit_number: str
    patient_id: UUID
    department_id: UUID
    assigned_doctor_id: UUID | None
    chief_complaint: str
    status: VisitStatus
    priority: VisitPriority
    visit_date: date
    checkin_time: datetime
    consultation_started_at: datetime | None = None
    completed_at: datetime | None = None

    class Config:
        from_attributes = True


class RegistrationResponse(BaseModel):
    patient: PatientSummary
    visit: VisitSummary
    token_number: int
    assigned_doctor_id: UUID | None
    estimated_wait_minutes: int
    is_new_patient: bool
