"""Ruten Shoplist — Data Access Layer"""

from rutenshop.data_access.registry import EntityName, ModelRegistry
from rutenshop.data_access.service import DataAccessService

__all__ = ["DataAccessService", "EntityName", "ModelRegistry"]
