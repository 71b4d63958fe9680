"""
Pytest configuration for the entire test suite.

Every test gets its own file-backed SQLite database, so worker threads in the
concurrency tests use real, separate connections with real locking.
"""
import os

# Settings are read once; point them at a throwaway URL before any import.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from intake_engine.core.database import get_db, get_session_factory
from intake_engine.dependencies.providers import (
    get_engine_clock,
    get_notification_sink,
    get_sequence_generator,
)
from intake_engine.models import (
    Base,
    Bed,
    BedStatus,
    Department,
    User,
    UserRole,
    Ward,
)
from intake_engine.notifications.base import NotificationSink
from intake_engine.services.registration_service import register_patient
from intake_engine.services.sequence_service import SequenceGenerator
from intake_engine.utils.datetime_utils import Clock

TODAY = date(2025, 5, 13)


class FixedClock(Clock):
    """Clock frozen at 2025-05-13 09:30 UTC unless told otherwise."""

    def __init__(self, moment: datetime | None = None):
        super().__init__("UTC")
        self.moment = moment or datetime(2025, 5, 13, 9, 30, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self.moment


class RecordingSink(NotificationSink):
    """Collects sent notifications instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send(self, recipient_id, title, message, related_entity_type, related_entity_id, **kwargs):
        if self.fail:
            raise RuntimeError("channel down")
        self.sent.append(
            {
                "recipient_id": recipient_id,
                "title": title,
                "message": message,
                "related_entity_type": related_entity_type,
                "related_entity_id": related_entity_id,
                **kwargs,
            }
        )


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'intake.db'}",
        future=True,
        poolclass=NullPool,
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def sequences(session_factory):
    return SequenceGenerator(session_factory, backoff_seconds=0.001)


@pytest.fixture
def sink():
    return RecordingSink()


# ----------------------------
# Factories
# ----------------------------
@pytest.fixture
def make_department(db):
    counter = {"n": 0}

    def _make(name: str = "General Medicine") -> Department:
        counter["n"] += 1
        dept = Department(name=name, code=f"D{counter['n']}", is_active=True)
        db.add(dept)
        db.commit()
        return dept

    return _make


@pytest.fixture
def make_user(db):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(
        role: UserRole = UserRole.DOCTOR,
        department: Department | None = None,
        is_active: bool = True,
        first_name: str | None = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            first_name=first_name or f"{role.value.title()}{counter['n']}",
            last_name="Test",
            role=role,
            department_id=department.id if department else None,
            is_active=is_active,
            # Strictly increasing so fetch order is predictable.
            created_at=base + timedelta(minutes=counter["n"]),
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_ward(db, make_user):
    counter = {"n": 0}

    def _make(
        beds: int = 3,
        admin: User | None = None,
        ward_type: str = "general",
        maintenance: int = 0,
    ) -> Ward:
        counter["n"] += 1
        admin = admin or make_user(UserRole.WARD_ADMIN)
        ward = Ward(
            name=f"Ward {counter['n']}",
            code=f"W{counter['n']}",
            ward_type=ward_type,
            admin_user_id=admin.id,
            total_beds=beds,
            available_beds=beds - maintenance,
            is_active=True,
        )
        db.add(ward)
        db.flush()
        for i in range(1, beds + 1):
            db.add(
                Bed(
                    ward_id=ward.id,
                    bed_number=f"{ward.code}-{i:02d}",
                    status=BedStatus.MAINTENANCE if i > beds - maintenance else BedStatus.AVAILABLE,
                )
            )
        db.commit()
        return ward

    return _make


def registration_fields(department: Department, **overrides) -> dict:
    fields = {
        "first_name": "Ali",
        "last_name": "Hassan",
        "date_of_birth": date(1990, 3, 2),
        "gender": "male",
        "phone": "0300-1234567",
        "department_id": department.id,
        "chief_complaint": "Fever for three days",
        "priority": "normal",
    }
    fields.update(overrides)
    return fields


@pytest.fixture
def register(db, sequences, clock):
    """Register a patient through the real registration service."""

    def _register(department: Department, **overrides):
        return register_patient(db, registration_fields(department, **overrides), sequences=sequences, clock=clock)

    return _register


def beds_of(db, ward_id):
    db.expire_all()
    return db.execute(select(Bed).where(Bed.ward_id == ward_id).order_by(Bed.bed_number)).scalars().all()


@pytest.fixture
def client(session_factory, sequences, clock, sink):
    from intake_engine.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_sequence_generator] = lambda: sequences
    app.dependency_overrides[get_engine_clock] = lambda: clock
    app.dependency_overrides[get_notification_sink] = lambda: sink
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
