import uuid
from datetime import date, datetime
from enum import Enum as PyEnum

from sqlalchemy import Date, DateTime, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, backref, mapped_column, relationship

from intake_engine.models.base import Base, str_enum
from intake_engine.models.visit import Visit


class TokenStatus(str, PyEnum):
    WAITING = "waiting"
    IN_CONSULTATION = "in_consultation"
    COMPLETED = "completed"


class Token(Base):
    """
    Queue ticket bound 1:1 to a Visit.

    Immutable once issued except for ``status``, which mirrors the visit.
    """

    __tablename__ = "tokens"
    __table_args__ = (
        UniqueConstraint(
            "department_id",
            "issue_date",
            "token_number",
            name="uq_tokens_department_date_number",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    token_number: Mapped[int] = mapped_column(Integer, nullable=False)

    # Foreign Keys
    visit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("visits.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    department_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("departments.id", ondelete="RESTRICT"),
        nullable=False,
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    )
    assigned_doctor_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[TokenStatus] = mapped_column(
        str_enum(TokenStatus, "token_status_enum"),
        nullable=False,
        default=TokenStatus.WAITING,
    )
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    issue_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    visit: Mapped["Visit"] = relationship("Visit", backref=backref("token", uselist=False))
