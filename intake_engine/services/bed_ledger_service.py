# intake_engine/services/bed_ledger_service.py
"""
Authoritative bed occupancy.

Invariant: ``ward.available_beds`` equals the number of that ward's beds in
status ``available``. Every bed status flip below updates the ward counter
with a relative increment in the *same* transaction as the bed write, and
every bed write is a conditional update on the expected current status, so
two writers can never both win the same bed.

claim_bed / release_bed run inside the caller's unit of work (the admission
workflow). set_bed_status / reconcile_ward are standalone operations with
their own unit of work and bounded retry.
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from intake_engine.core.config import get_settings
from intake_engine.core.database import storage_errors, unit_of_work
from intake_engine.core.exceptions import BedUnavailable, NotFound, StateConflict, ValidationError
from intake_engine.models.ward import Bed, BedStatus, Ward
from intake_engine.utils.retry import retry_transient

logger = logging.getLogger(__name__)


def _adjust_available(db: Session, ward_id: UUID, delta: int) -> None:
    updated = (
        db.query(Ward)
        .filter(Ward.id == ward_id)
        .update({Ward.available_beds: Ward.available_beds + delta}, synchronize_session=False)
    )
    if updated != 1:
        raise NotFound("Ward not found")


def _flip_bed(
    db: Session,
    bed_id: UUID,
    *,
    expected: BedStatus,
    target: BedStatus,
    patient_id: Optional[UUID] = None,
) -> UUID:
    """
    Move a bed from ``expected`` to ``target`` status and keep the ward
    counter in step. Returns the bed's ward id. Raises StateConflict if the
    bed is no longer in ``expected`` status.
    """
    updated = (
        db.query(Bed)
        .filter(Bed.id == bed_id, Bed.status == expected)
        .update(
            {Bed.status: target, Bed.current_patient_id: patient_id},
            synchronize_session=False,
        )
    )
    if updated != 1:
        raise StateConflict(f"Bed is no longer {expected.value}")

    ward_id = db.query(Bed.ward_id).filter(Bed.id == bed_id).scalar()
    delta = int(target == BedStatus.AVAILABLE) - int(expected == BedStatus.AVAILABLE)
    if delta:
        _adjust_available(db, ward_id, delta)
    return ward_id


def claim_bed(db: Session, bed_id: UUID, patient_id: UUID) -> UUID:
    """
    available -> occupied by ``patient_id``; ward counter -1.

    Must run inside the caller's unit of work. Raises BedUnavailable when
    someone else got there first.
    """
    try:
        return _flip_bed(
            db,
            bed_id,
            expected=BedStatus.AVAILABLE,
            target=BedStatus.OCCUPIED,
            patient_id=patient_id,
        )
    except StateConflict:
        logger.info("Bed %s claim lost: no longer available", bed_id)
        raise BedUnavailable("Bed is no longer available.") from None


def release_bed(db: Session, bed_id: UUID) -> UUID:
    """
    occupied -> available, occupant cleared; ward counter +1.

    Must run inside the caller's unit of work.
    """
    return _flip_bed(db, bed_id, expected=BedStatus.OCCUPIED, target=BedStatus.AVAILABLE)


def set_bed_status(db: Session, bed_id: UUID, status: BedStatus) -> Bed:
    """
    Take a bed out of service (available -> maintenance) or put it back
    (maintenance -> available). Occupied beds are released only by discharge.
    """
    if status == BedStatus.OCCUPIED:
        raise ValidationError("Beds become occupied only through admission approval.")

    settings = get_settings()

    def attempt() -> Bed:
        with storage_errors(db):
            bed = db.query(Bed).populate_existing().filter(Bed.id == bed_id).first()
            if not bed:
                raise NotFound("Bed not found")
            if bed.status == status:
                return bed
            if bed.status == BedStatus.OCCUPIED:
                raise StateConflict("Bed is occupied; discharge the patient first.")

            with unit_of_work(db):
                _flip_bed(db, bed_id, expected=bed.status, target=status)
            db.refresh(bed)
            return bed

    return retry_transient(
        attempt,
        attempts=settings.storage_max_attempts,
        backoff_seconds=settings.retry_backoff_seconds,
        label=f"bed {bed_id} status",
    )


def count_beds(db: Session, ward_id: UUID, status: Optional[BedStatus] = None) -> int:
    query = db.query(func.count(Bed.id)).filter(Bed.ward_id == ward_id)
    if status is not None:
        query = query.filter(Bed.status == status)
    return query.scalar()


def reconcile_ward(db: Session, ward_id: UUID) -> Ward:
    """
    Recompute ``total_beds`` and ``available_beds`` from bed rows.

    For seeding and manual data repair; the normal flows never drift.
    """
    with unit_of_work(db):
        # Locked and re-read, so the drift check sees the stored counters and
        # no approval adjusts them mid-recount.
        ward = (
            db.query(Ward)
            .populate_existing()
            .with_for_update()
            .filter(Ward.id == ward_id)
            .first()
        )
        if not ward:
            raise NotFound("Ward not found")
        total = count_beds(db, ward_id)
        available = count_beds(db, ward_id, BedStatus.AVAILABLE)
        if ward.available_beds != available or ward.total_beds != total:
            logger.warning(
                "Ward %s counters drifted (available %s -> %s, total %s -> %s)",
                ward_id,
                ward.available_beds,
                available,
                ward.total_beds,
                total,
            )
        ward.total_beds = total
        ward.available_beds = available
    db.refresh(ward)
    return ward


def list_wards(db: Session, *, admin_user_id: Optional[UUID] = None, active_only: bool = True) -> list[Ward]:
    """Wards with their beds loaded, ordered by name."""
    query = db.query(Ward).options(selectinload(Ward.beds))
    if active_only:
        query = query.filter(Ward.is_active.is_(True))
    if admin_user_id is not None:
        query = query.filter(Ward.admin_user_id == admin_user_id)
    with storage_errors(db):
        return query.order_by(Ward.name.asc()).all()


def choose_ward(db: Session, ward_type: str) -> Ward:
    """Active ward of ``ward_type`` with the most available beds."""
    ward = (
        db.query(Ward)
        .filter(
            Ward.ward_type == ward_type,
            Ward.is_active.is_(True),
            Ward.available_beds > 0,
        )
        .order_by(Ward.available_beds.desc(), Ward.name.asc())
        .first()
    )
    if not ward:
        raise BedUnavailable(
            f"No available beds in the requested ward type ({ward_type}). "
            "Please try again later or contact administration."
        )
    return ward
