import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    DateTime,
    ForeignKey,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intake_engine.models.base import Base, str_enum
from intake_engine.models.patient import Patient
from intake_engine.models.user import User
from intake_engine.models.visit import Visit
from intake_engine.models.ward import Bed, Ward


class AdmissionStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISCHARGED = "discharged"
    # Legacy rows only: an old request path wrote new admissions straight to
    # "active". Nothing creates this status any more.
    ACTIVE = "active"


# Statuses shown to ward admins as "awaiting your decision".
# TECH DEBT: "active" is here only until the legacy rows are migrated to
# "pending" by a data migration; drop it from this set afterwards.
PENDING_EQUIVALENT_STATUSES = frozenset({AdmissionStatus.PENDING, AdmissionStatus.ACTIVE})


class AdmissionType(str, PyEnum):
    ELECTIVE = "elective"
    EMERGENCY = "emergency"


class Admission(Base):
    """
    Request to move a visit's patient into a ward.

    Created by a requesting doctor, decided by the ward's administrator.
    """

    __tablename__ = "admissions"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    admission_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    # Foreign Keys
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    visit_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("visits.id", ondelete="SET NULL"),
        nullable=True,
    )
    ward_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("wards.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    requested_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        doc="Doctor who requested the admission",
    )
    assigned_doctor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Ward-side doctor set at approval time",
    )
    bed_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("beds.id", ondelete="SET NULL"),
        nullable=True,
    )
    decided_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Request Details
    admission_type: Mapped[AdmissionType] = mapped_column(
        str_enum(AdmissionType, "admission_type_enum"),
        nullable=False,
        default=AdmissionType.ELECTIVE,
    )
    urgency: Mapped[str] = mapped_column(String(20), nullable=False, default="normal")
    admission_reason: Mapped[str] = mapped_column(Text, nullable=False)
    # Copied from the consultation that led to the request.
    diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    treatment_plan: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Status
    status: Mapped[AdmissionStatus] = mapped_column(
        str_enum(AdmissionStatus, "admission_status_enum"),
        nullable=False,
        default=AdmissionStatus.PENDING,
        index=True,
    )
    decision_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    discharged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

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
    patient: Mapped["Patient"] = relationship("Patient", backref="admissions")
    visit: Mapped["Visit | None"] = relationship("Visit")
    ward: Mapped["Ward"] = relationship("Ward")
    bed: Mapped["Bed | None"] = relationship("Bed")
    requesting_doctor: Mapped["User"] = relationship("User", foreign_keys=[requested_by])
    assigned_doctor: Mapped["User | None"] = relationship("User", foreign_keys=[assigned_doctor_id])
