# intake_engine/api/v1/endpoints/visits.py
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from intake_engine.core.database import get_db
from intake_engine.dependencies.providers import get_engine_clock
from intake_engine.schemas.patient import VisitSummary
from intake_engine.schemas.visit import VisitStatusUpdate
from intake_engine.services.visit_service import update_visit_status
from intake_engine.utils.datetime_utils import Clock

router = APIRouter()


@router.put("/{visit_id}/status", response_model=VisitSummary)
def change_visit_status(
    visit_id: UUID,
    payload: VisitStatusUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_engine_clock),
) -> VisitSummary:
    visit = update_visit_status(db, visit_id, payload.status, clock=clock)
    return VisitSummary.model_validate(visit)
