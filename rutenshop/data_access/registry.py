"""
Ruten Shoplist — Model Registry

Resolves entity names ("cards") to SQLAlchemy mapped classes. Each handle is
looked up once and reused for the lifetime of the process.
"""

from __future__ import annotations

from enum import Enum

import structlog

from rutenshop.errors import SchemaNotFoundError
from rutenshop.models import Base

logger = structlog.get_logger(__name__)


class EntityName(str, Enum):
    """Entities the data access layer knows how to query."""
    CARDS = "cards"


def _registered_schemas() -> dict[str, type[Base]]:
    """Map table name -> mapped class for every model declared on Base."""
    return {
        mapper.class_.__tablename__: mapper.class_
        for mapper in Base.registry.mappers
    }


class ModelRegistry:
    """
    Process-wide cache of model handles keyed by entity name.

    Usage:
        registry = ModelRegistry.get_instance()
        Card = registry.get_model(EntityName.CARDS)
    """

    _instance: ModelRegistry | None = None

    def __init__(self) -> None:
        self._models: dict[str, type[Base]] = {}

    @classmethod
    def get_instance(cls) -> ModelRegistry:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get_model(self, entity_name: str | EntityName) -> type[Base]:
        """
        Return the mapped class for an entity name.

        Raises:
            SchemaNotFoundError: If no model is declared for the name.
        """
        name = entity_name.value if isinstance(entity_name, EntityName) else entity_name

        model = self._models.get(name)
        if model is not None:
            return model

        model = _registered_schemas().get(name)
        if model is None:
            logger.error("data_access_schema_not_found", model=name)
            raise SchemaNotFoundError(name)

        self._models[name] = model
        logger.debug("data_access_model_registered", model=name)
        return model
