# intake_engine/schemas/admission.py
from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel

from intake_engine.models.admission import AdmissionStatus, AdmissionType
from intake_engine.schemas.ward import WardOccupancy


class AdmissionRequestCreate(BaseModel):
    visit_id: UUID
    requested_by: UUID
    admission_reason: str
    ward_id: UUID | None = None  # Optional - chosen by ward_type when absent
    ward_type: str | None = None
    urgency: Literal["normal", "urgent", "emergency"] = "normal"
    notes: str | None = None
    diagnosis: str | None = None
    treatment_plan: str | None = None


class AdmissionDecisionRequest(BaseModel):
    action: Literal["approve", "reject"]
    ward_admin_id: UUID
    bed_id: UUID | None = None
    assigned_doctor_id: UUID | None = None
    notes: str | None = None


class DischargeRequest(BaseModel):
    actor_id: UUID
    notes: str | None = None


class AdmissionResponse(BaseModel):
    id: UUID
    admission_number: str
    patient_id: UUID
    visit_id: UUID | None
    ward_id: UUID
    requested_by: UUID
    assigned_doctor_id: UUID | None
    bed_id: UUID | None
    decided_by: UUID | None
    status: AdmissionStatus
    admission_type: AdmissionType
    urgency: str
    admission_reason: str
    diagnosis: str | None
    treatment_plan: str | None
    notes: str | None
    decision_notes: str | None
    decided_at: datetime | None
    discharged_at: datetime | None
    created_at: datetime

    # Computed fields for frontend convenience
    patient_name: str | None = None
    patient_number: str | None = None
    ward_name: str | None = None
    requesting_doctor_name: str | None = None

    class Config:
        from_attributes = True


class PendingAdmissionsResponse(BaseModel):
    pending_requests: list[AdmissionResponse]
    wards: list[WardOccupancy]


class AssignedAdmissionsGroup(BaseModel):
    doctor_id: UUID
    admissions: list[AdmissionResponse]
