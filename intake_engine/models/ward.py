import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    text,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intake_engine.models.base import Base, str_enum
from intake_engine.models.patient import Patient
from intake_engine.models.user import User


class BedStatus(str, PyEnum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"


class Ward(Base):
    """
    Physical care unit.

    ``available_beds`` is a cached count of this ward's beds in status
    ``available``. It is only ever changed in the same transaction as the
    bed row it accounts for (see services.bed_ledger_service).
    """

    __tablename__ = "wards"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    ward_type: Mapped[str] = mapped_column(String(30), nullable=False, default="general", index=True)

    admin_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        doc="Ward administrator allowed to decide admissions for this ward.",
    )

    total_beds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_beds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    admin: Mapped["User | None"] = relationship("User")
    beds: Mapped[list["Bed"]] = relationship(
        "Bed",
        back_populates="ward",
        order_by="Bed.bed_number",
    )

    @property
    def occupied_beds(self) -> int:
        return sum(1 for bed in self.beds if bed.status == BedStatus.OCCUPIED)


class Bed(Base):
    """
    One bed in a ward.

    Invariant (enforced by a check constraint): ``current_patient_id`` is set
    if and only if ``status`` is ``occupied``.
    """

    __tablename__ = "beds"
    __table_args__ = (
        UniqueConstraint("ward_id", "bed_number", name="uq_beds_ward_number"),
        CheckConstraint(
            "(status = 'occupied' AND current_patient_id IS NOT NULL)"
            " OR (status <> 'occupied' AND current_patient_id IS NULL)",
            name="ck_beds_occupant_matches_status",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    ward_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("wards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    bed_number: Mapped[str] = mapped_column(String(20), nullable=False)
    bed_type: Mapped[str] = mapped_column(String(30), nullable=False, default="standard")
    status: Mapped[BedStatus] = mapped_column(
        str_enum(BedStatus, "bed_status_enum"),
        nullable=False,
        default=BedStatus.AVAILABLE,
        index=True,
    )
    current_patient_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )

    ward: Mapped["Ward"] = relationship("Ward", back_populates="beds")
    current_patient: Mapped["Patient | None"] = relationship("Patient")
