"""
Models package — export all SQLAlchemy models.
"""

from rutenshop.models.base import Base
from rutenshop.models.card import Card

__all__ = ["Base", "Card"]
