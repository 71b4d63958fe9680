# intake_engine/services/assignment_service.py
"""
Doctor selection at registration time.

Policy: the active doctor in the department with the fewest visits assigned
today wins. Ties go to the doctor fetched first (doctors are fetched in
``created_at, id`` order). This is least-loaded selection, not true
round-robin: with equal loads the same doctor keeps winning until their
count moves ahead.

Loads are read in a single grouped query, so all doctors are compared
against one snapshot. Concurrent registrations may still read the same
snapshot and pick the same doctor; that slight imbalance is accepted.
"""
import logging
from datetime import date
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from intake_engine.models.user import User, UserRole
from intake_engine.models.visit import Visit

logger = logging.getLogger(__name__)


def pick_least_loaded(doctor_ids: Sequence[UUID], loads: dict[UUID, int]) -> Optional[UUID]:
    """
    First doctor (in the given order) with the strictly smallest load.
    Doctors missing from ``loads`` count as 0. None for an empty pool.
    """
    chosen: Optional[UUID] = None
    chosen_load = 0
    for doctor_id in doctor_ids:
        load = loads.get(doctor_id, 0)
        if chosen is None or load < chosen_load:
            chosen, chosen_load = doctor_id, load
    return chosen


def list_eligible_doctors(db: Session, department_id: UUID) -> list[UUID]:
    rows = (
        db.query(User.id)
        .filter(
            User.department_id == department_id,
            User.role == UserRole.DOCTOR,
            User.is_active.is_(True),
        )
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )
    return [row.id for row in rows]


def doctor_workloads(db: Session, doctor_ids: Sequence[UUID], day: date) -> dict[UUID, int]:
    """Visits assigned to each doctor on ``day``."""
    if not doctor_ids:
        return {}
    rows = (
        db.query(Visit.assigned_doctor_id, func.count(Visit.id))
        .filter(
            Visit.assigned_doctor_id.in_(doctor_ids),
            Visit.visit_date == day,
        )
        .group_by(Visit.assigned_doctor_id)
        .all()
    )
    return {doctor_id: count for doctor_id, count in rows}


def assign_doctor(db: Session, department_id: UUID, day: date) -> Optional[UUID]:
    """
    Doctor id for a new visit in ``department_id``, or None when nobody is
    eligible. None is not an error: the visit is still created, unassigned.
    """
    doctor_ids = list_eligible_doctors(db, department_id)
    if not doctor_ids:
        logger.info("No active doctor in department %s; visit will be unassigned", department_id)
        return None
    return pick_least_loaded(doctor_ids, doctor_workloads(db, doctor_ids, day))
