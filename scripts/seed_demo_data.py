#!/usr/bin/env python3
# scripts/seed_demo_data.py
"""
Intake engine demo data seeder + reset.

What gets seeded:
- 3 departments (General Medicine, Pediatrics, Emergency)
- Per department: 2 active doctors and 1 receptionist
- 3 ward admins, one per ward
- 3 wards (general, icu, pediatric) with beds; a couple of beds parked in
  maintenance so the occupancy overview is not uniform
- Ward counters reconciled from bed rows at the end

Reset: demo rows are recognised by their codes, which all start with
``DEMO-``; nothing else is touched.

Run:
  python -m scripts.seed_demo_data --seed
  python -m scripts.seed_demo_data --reset
  python -m scripts.seed_demo_data --create-tables --seed   # local SQLite
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

# Allow "python -m scripts.seed_demo_data" from repo root
REPO_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(REPO_ROOT))

from intake_engine.core.config import get_settings  # noqa: E402
from intake_engine.models import (  # noqa: E402
    Base,
    Bed,
    BedStatus,
    Department,
    User,
    UserRole,
    Ward,
)
from intake_engine.services.bed_ledger_service import reconcile_ward  # noqa: E402

logger = logging.getLogger(__name__)

DEMO_PREFIX = "DEMO-"

# ----------------------------
# Engine / Session for seeding
# ----------------------------
_seed_settings = get_settings()

# NullPool is deliberate for scripts (one-shot process, no connection reuse).
_seed_engine = create_engine(
    _seed_settings.database_url,
    future=True,
    pool_pre_ping=True,
    poolclass=NullPool,
)

SeedSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=_seed_engine,
    future=True,
    expire_on_commit=False,
)


@dataclass(frozen=True)
class DemoDepartment:
    code: str
    name: str
    doctors: tuple[tuple[str, str], ...]
    receptionist: tuple[str, str]


@dataclass(frozen=True)
class DemoWard:
    code: str
    name: str
    ward_type: str
    admin: tuple[str, str]
    beds: int
    maintenance: int = 0


DEPARTMENTS = (
    DemoDepartment(
        code="GEN",
        name="General Medicine",
        doctors=(("Ayesha", "Khan"), ("Bilal", "Ahmed")),
        receptionist=("Sana", "Iqbal"),
    ),
    DemoDepartment(
        code="PED",
        name="Pediatrics",
        doctors=(("Fatima", "Raza"), ("Hamza", "Malik")),
        receptionist=("Nida", "Shah"),
    ),
    DemoDepartment(
        code="EMR",
        name="Emergency",
        doctors=(("Usman", "Tariq"), ("Zara", "Hussain")),
        receptionist=("Omar", "Farooq"),
    ),
)

WARDS = (
    DemoWard(code="GW1", name="General Ward", ward_type="general", admin=("Imran", "Qureshi"), beds=12, maintenance=1),
    DemoWard(code="ICU", name="Intensive Care Unit", ward_type="icu", admin=("Hina", "Aslam"), beds=6),
    DemoWard(code="PW1", name="Pediatric Ward", ward_type="pediatric", admin=("Kamran", "Javed"), beds=8, maintenance=2),
)


def demo_code(code: str) -> str:
    return f"{DEMO_PREFIX}{code}"


def _log_db_error(e: Exception) -> None:
    """
    Emit the underlying DB error.
    """
    logger.error("Seed failed: %s", e, exc_info=True)
    if isinstance(e, SQLAlchemyError) and getattr(e, "orig", None) is not None:
        logger.error("DBAPI orig: %r", e.orig)


def get_or_create_department(db: Session, spec: DemoDepartment) -> Department:
    code = demo_code(spec.code)
    dept = db.query(Department).filter(Department.code == code).first()
    if dept:
        dept.is_active = True
        return dept
    dept = Department(name=spec.name, code=code, is_active=True)
    db.add(dept)
    db.flush()
    return dept


def get_or_create_user(
    db: Session,
    first_name: str,
    last_name: str,
    role: UserRole,
    department: Department | None = None,
) -> User:
    existing = (
        db.query(User)
        .filter(
            User.first_name == first_name,
            User.last_name == last_name,
            User.role == role,
        )
        .first()
    )
    if existing:
        existing.is_active = True
        return existing

    user = User(
        first_name=first_name,
        last_name=last_name,
        role=role,
        department_id=department.id if department else None,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def upsert_ward(db: Session, spec: DemoWard) -> Ward:
    admin = get_or_create_user(db, *spec.admin, UserRole.WARD_ADMIN)

    code = demo_code(spec.code)
    ward = db.query(Ward).filter(Ward.code == code).first()
    if not ward:
        ward = Ward(
            name=spec.name,
            code=code,
            ward_type=spec.ward_type,
            admin_user_id=admin.id,
            total_beds=0,
            available_beds=0,
            is_active=True,
        )
        db.add(ward)
        db.flush()
    else:
        ward.admin_user_id = admin.id

    existing_numbers = set(
        row.bed_number for row in db.query(Bed.bed_number).filter(Bed.ward_id == ward.id).all()
    )
    for i in range(1, spec.beds + 1):
        bed_number = f"{spec.code}-{i:02d}"
        if bed_number in existing_numbers:
            continue
        # The last few beds start out of service.
        in_maintenance = i > spec.beds - spec.maintenance
        db.add(
            Bed(
                ward_id=ward.id,
                bed_number=bed_number,
                bed_type="icu" if spec.ward_type == "icu" else "standard",
                status=BedStatus.MAINTENANCE if in_maintenance else BedStatus.AVAILABLE,
            )
        )
    db.flush()
    return ward


def seed(db: Session) -> None:
    for spec in DEPARTMENTS:
        dept = get_or_create_department(db, spec)
        for first, last in spec.doctors:
            get_or_create_user(db, first, last, UserRole.DOCTOR, dept)
        get_or_create_user(db, *spec.receptionist, UserRole.RECEPTIONIST, dept)
        logger.info("Department %s ready", dept.code)

    ward_ids = [upsert_ward(db, spec).id for spec in WARDS]
    db.commit()

    # Counters are derived from bed rows, never typed in.
    for ward_id in ward_ids:
        ward = reconcile_ward(db, ward_id)
        logger.info("Ward %s: %s/%s beds available", ward.code, ward.available_beds, ward.total_beds)


def reset(db: Session) -> None:
    """
    Delete demo wards and beds. Demo departments and staff are deactivated
    rather than deleted, because visits may reference them.
    """
    wards = db.query(Ward).filter(Ward.code.like(f"{DEMO_PREFIX}%")).all()
    ward_ids = [ward.id for ward in wards]
    admin_ids = [ward.admin_user_id for ward in wards if ward.admin_user_id]
    depts = db.query(Department).filter(Department.code.like(f"{DEMO_PREFIX}%")).all()
    dept_ids = [dept.id for dept in depts]

    staff = (
        db.query(User)
        .filter((User.department_id.in_(dept_ids)) | (User.id.in_(admin_ids)))
        .all()
    )
    for user in staff:
        user.is_active = False

    db.query(Bed).filter(Bed.ward_id.in_(ward_ids)).delete(synchronize_session=False)
    db.query(Ward).filter(Ward.id.in_(ward_ids)).delete(synchronize_session=False)
    for dept in depts:
        dept.is_active = False
    db.commit()
    logger.info("Reset %d wards, %d departments, %d staff", len(ward_ids), len(dept_ids), len(staff))


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed / reset intake engine demo data")
    parser.add_argument("--seed", action="store_true", help="Seed departments, staff, wards and beds")
    parser.add_argument("--reset", action="store_true", help="Delete demo wards/beds, deactivate demo staff")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables from the models first (local SQLite; use alembic elsewhere)",
    )
    args = parser.parse_args()

    logging.basicConfig(level=_seed_settings.log_level.upper(), format="%(levelname)s %(message)s")

    if not (args.seed or args.reset or args.create_tables):
        parser.print_help()
        raise SystemExit(1)

    if args.create_tables:
        Base.metadata.create_all(_seed_engine)

    def _with_fresh_session(work) -> None:
        db: Session = SeedSessionLocal()
        try:
            work(db)
        except Exception as e:
            _log_db_error(e)
            db.rollback()
            raise
        finally:
            db.close()

    if args.reset:
        _with_fresh_session(reset)

    if args.seed:
        _with_fresh_session(seed)


if __name__ == "__main__":
    main()
