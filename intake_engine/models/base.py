from enum import Enum as PyEnum

from sqlalchemy import Enum
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all ORM models.
    """

    pass


def str_enum(enum_cls: type[PyEnum], name: str) -> Enum:
    """
    Portable enum column type.

    Stores the enum *values* (lowercase strings) as VARCHAR so the same
    schema works on PostgreSQL and SQLite and raw SQL filters read naturally.
    """
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
