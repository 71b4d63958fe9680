"""
Import every model so ``Base.metadata`` is complete for Alembic and tests.
"""
from intake_engine.models.base import Base
from intake_engine.models.department import Department
from intake_engine.models.user import User, UserRole
from intake_engine.models.patient import Patient
from intake_engine.models.visit import Visit, VisitPriority, VisitStatus
from intake_engine.models.token import Token, TokenStatus
from intake_engine.models.ward import Bed, BedStatus, Ward
from intake_engine.models.admission import Admission, AdmissionStatus, AdmissionType
from intake_engine.models.notification import Notification, NotificationStatus
from intake_engine.models.sequence_counter import SequenceCounter

__all__ = [
    "Admission",
    "AdmissionStatus",
    "AdmissionType",
    "Base",
    "Bed",
    "BedStatus",
    "Department",
    "Notification",
    "NotificationStatus",
    "Patient",
    "SequenceCounter",
    "Token",
    "TokenStatus",
    "User",
    "UserRole",
    "Visit",
    "VisitPriority",
    "VisitStatus",
    "Ward",
]
