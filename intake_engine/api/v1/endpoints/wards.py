# intake_engine/api/v1/endpoints/wards.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from intake_engine.core.database import get_db
from intake_engine.models.ward import Bed, Ward
from intake_engine.schemas.ward import BedResponse, BedStatusUpdate, WardOccupancy
from intake_engine.services.bed_ledger_service import list_wards, reconcile_ward, set_bed_status

router = APIRouter()


def bed_response(bed: Bed) -> BedResponse:
    response = BedResponse.model_validate(bed)
    if bed.current_patient is not None:
        response.patient_name = bed.current_patient.full_name
    return response


def ward_occupancy(ward: Ward) -> WardOccupancy:
    return WardOccupancy(
        id=ward.id,
        name=ward.name,
        code=ward.code,
        ward_type=ward.ward_type,
        admin_user_id=ward.admin_user_id,
        total_beds=ward.total_beds,
        available_beds=ward.available_beds,
        occupied_beds=ward.occupied_beds,
        beds=[bed_response(bed) for bed in ward.beds],
    )


@router.get("", response_model=list[WardOccupancy])
def get_wards(
    admin_user_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
) -> list[WardOccupancy]:
    """Per-ward total / available / occupied counts with the bed list."""
    return [ward_occupancy(ward) for ward in list_wards(db, admin_user_id=admin_user_id)]


@router.put("/beds/{bed_id}/status", response_model=BedResponse)
def change_bed_status(
    bed_id: UUID,
    payload: BedStatusUpdate,
    db: Session = Depends(get_db),
) -> BedResponse:
    """Toggle a bed between available and maintenance."""
    return bed_response(set_bed_status(db, bed_id, payload.status))


@router.post("/{ward_id}/reconcile", response_model=WardOccupancy)
def reconcile(
    ward_id: UUID,
    db: Session = Depends(get_db),
) -> WardOccupancy:
    """Recompute ward counters from bed rows."""
    return ward_occupancy(reconcile_ward(db, ward_id))
