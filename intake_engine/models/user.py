import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid, text, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intake_engine.models.base import Base, str_enum
from intake_engine.models.department import Department


class UserRole(str, PyEnum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    WARD_ADMIN = "ward_admin"
    NURSE = "nurse"
    RECEPTIONIST = "receptionist"


class User(Base):
    """
    Hospital staff member.

    Only the fields the allocation engine needs are modelled here; login and
    profile data belong to the surrounding platform.
    """

    __tablename__ = "users"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Personal Information
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Professional Information
    role: Mapped[UserRole] = mapped_column(
        str_enum(UserRole, "user_role_enum"),
        nullable=False,
        index=True,
    )
    department_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    department: Mapped["Department | None"] = relationship("Department")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
