"""
SQLAlchemy 2.0 async DeclarativeBase for Ruten Shoplist.

All models inherit from this Base.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all Ruten Shoplist database models."""
    pass
