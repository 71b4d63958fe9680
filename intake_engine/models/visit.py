import uuid
from datetime import date, datetime
from enum import Enum as PyEnum

from sqlalchemy import Date, DateTime, ForeignKey, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intake_engine.models.base import Base, str_enum
from intake_engine.models.department import Department
from intake_engine.models.patient import Patient
from intake_engine.models.user import User


class VisitStatus(str, PyEnum):
    WAITING = "waiting"
    IN_CONSULTATION = "in_consultation"
    COMPLETED = "completed"


# Forward-only progression; a visit never regresses.
VISIT_STATUS_ORDER = {
    VisitStatus.WAITING: 0,
    VisitStatus.IN_CONSULTATION: 1,
    VisitStatus.COMPLETED: 2,
}


class VisitPriority(str, PyEnum):
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class Visit(Base):
    """
    One clinical encounter, created at registration time.
    """

    __tablename__ = "visits"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    visit_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    # Foreign Keys
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("departments.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    assigned_doctor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Null when no active doctor was available at registration.",
    )

    # Visit Details
    visit_type: Mapped[str] = mapped_column(String(20), nullable=False, default="opd")
    chief_complaint: Mapped[str] = mapped_column(Text, nullable=False)
    symptoms: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[VisitStatus] = mapped_column(
        str_enum(VisitStatus, "visit_status_enum"),
        nullable=False,
        default=VisitStatus.WAITING,
        index=True,
    )
    priority: Mapped[VisitPriority] = mapped_column(
        str_enum(VisitPriority, "visit_priority_enum"),
        nullable=False,
        default=VisitPriority.NORMAL,
    )
    visit_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    checkin_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consultation_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )

    # Relationships
    patient: Mapped["Patient"] = relationship("Patient", backref="visits")
    department: Mapped["Department"] = relationship("Department")
    assigned_doctor: Mapped["User | None"] = relationship("User", foreign_keys=[assigned_doctor_id])
