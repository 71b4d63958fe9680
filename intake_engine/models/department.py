import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Uuid, text, true

from intake_engine.models.base import Base


class Department(Base):
    """
    A clinical department. Visits, tokens and doctors are scoped to one.
    """

    __tablename__ = "departments"

    # Primary Key
    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Department Information
    name = Column(String(100), nullable=False)
    code = Column(String(20), nullable=True, unique=True)

    # Flags
    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )

    # Timestamps
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )
