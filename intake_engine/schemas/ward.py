# intake_engine/schemas/ward.py
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from intake_engine.models.ward import BedStatus


class BedResponse(BaseModel):
    id: UUID
    ward_id: UUID
    bed_number: str
    bed_type: str
    status: BedStatus
    current_patient_id: UUID | None
    updated_at: datetime | None = None

    # Computed for display
    patient_name: str | None = None

    class Config:
        from_attributes = True


class WardOccupancy(BaseModel):
    id: UUID
    name: str
    code: str
    ward_type: str
    admin_user_id: UUID | None
    total_beds: int
    available_beds: int
    occupied_beds: int
    beds: list[BedResponse] = []

    class Config:
        from_attributes = True


class BedStatusUpdate(BaseModel):
    status: BedStatus
