"""SQLAlchemy Base class for all models."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by every table in the service."""


def import_models():
    """Import all models to register them with SQLAlchemy."""
    from tourguide.models import (  # noqa: F401
        booking,
        location,
        message,
        review,
        user,
    )
