"""SQLAlchemy ORM base for models served as tables."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for SQLAlchemy ORM models exposed through the table catalog."""

    pass
