"""SQLAlchemy declarative base shared by all elibrary tables."""

from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase

from ..utils import to_iso, utc_now


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def generate_uuid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid4())


def timestamp_now() -> str:
    """Current UTC time in storage format."""
    return to_iso(utc_now())
