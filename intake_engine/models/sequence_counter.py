from datetime import datetime

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from intake_engine.models.base import Base


class SequenceCounter(Base):
    """
    One row per sequence scope, e.g. ``visit:2025-05-13`` or
    ``token:<department_id>:2025-05-13``.

    ``value`` is the last number handed out in the scope.
    """

    __tablename__ = "sequence_counters"

    scope: Mapped[str] = mapped_column(String(120), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )
