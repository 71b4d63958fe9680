import logging
from uuid import UUID

from sqlalchemy.orm import Session

from intake_engine.core.database import storage_errors, unit_of_work
from intake_engine.core.exceptions import NotFound, StateConflict
from intake_engine.models.token import Token, TokenStatus
from intake_engine.models.visit import VISIT_STATUS_ORDER, Visit, VisitStatus
from intake_engine.utils.datetime_utils import Clock

logger = logging.getLogger(__name__)


def update_visit_status(db: Session, visit_id: UUID, status: VisitStatus, *, clock: Clock) -> Visit:
    """
    Move a visit forward (waiting -> in_consultation -> completed).

    Setting the current status again is a no-op; moving backwards is a
    StateConflict. The visit's token follows in the same unit of work.
    """
    with storage_errors(db):
        visit = db.query(Visit).populate_existing().filter(Visit.id == visit_id).first()
    if not visit:
        raise NotFound("Visit not found")

    current = visit.status
    if current == status:
        return visit
    if VISIT_STATUS_ORDER[status] < VISIT_STATUS_ORDER[current]:
        raise StateConflict(f"Visit cannot go back from {current.value} to {status.value}.")

    values = {"status": status}
    now = clock.now()
    if status == VisitStatus.IN_CONSULTATION:
        values["consultation_started_at"] = now
    elif status == VisitStatus.COMPLETED:
        values["completed_at"] = now
        if visit.consultation_started_at is None:
            values["consultation_started_at"] = now

    with unit_of_work(db):
        updated = (
            db.query(Visit)
            .filter(Visit.id == visit_id, Visit.status == current)
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            raise StateConflict("Visit status was changed concurrently.")
        db.query(Token).filter(Token.visit_id == visit_id).update(
            {Token.status: TokenStatus(status.value)},
            synchronize_session=False,
        )

    db.refresh(visit)
    logger.info("Visit %s: %s -> %s", visit.visit_number, current.value, status.value)
    return visit
