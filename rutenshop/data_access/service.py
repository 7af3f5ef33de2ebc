"""
Ruten Shoplist — Data Access Service

Lazily connected query facade over the card metadata store. The engine is
created and health-checked on first use only; later calls reuse it.

Filters follow document-store conventions so callers do not build SQL:
    {"id": "12345"}                              equality, evaluated in SQL
    {"rarity": re.compile("ur", re.IGNORECASE)}  pattern, evaluated per row;
                                                 list columns match when any
                                                 element matches
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from rutenshop.config import settings
from rutenshop.data_access.registry import EntityName, ModelRegistry

logger = structlog.get_logger(__name__)


def _matches(value: Any, pattern: re.Pattern[str]) -> bool:
    if isinstance(value, (list, tuple)):
        return any(isinstance(item, str) and pattern.search(item) for item in value)
    return isinstance(value, str) and pattern.search(value) is not None


class DataAccessService:
    """
    Connect-once query facade.

    Usage:
        service = DataAccessService()
        rows = await service.find("cards", {"id": "12345"}, ["name", "rarity"])
        await service.dispose()
    """

    def __init__(
        self,
        database_url: str | None = None,
        engine: AsyncEngine | None = None,
    ):
        self._database_url = database_url or settings.DATABASE_URL
        self._engine = engine
        self._registry = ModelRegistry.get_instance()
        self._is_init = False
        self._init_lock = asyncio.Lock()

    @property
    def engine(self) -> AsyncEngine | None:
        return self._engine

    async def _init(self) -> None:
        logger.info("data_access_initializing")
        try:
            if self._engine is None:
                self._engine = create_async_engine(
                    self._database_url,
                    echo=False,
                    pool_pre_ping=True,
                )
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(
                "data_access_connection_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self._is_init = True
        logger.info("data_access_connected")

    async def _ensure_initialized(self) -> None:
        if self._is_init:
            return
        async with self._init_lock:
            if not self._is_init:
                await self._init()

    async def find(
        self,
        entity_name: str | EntityName,
        filters: Mapping[str, Any] | None = None,
        projection: Sequence[str] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Query rows of an entity.

        Args:
            entity_name: Registered entity (table) name.
            filters: Field -> value (equality) or field -> compiled pattern.
            projection: Fields to return. All columns when omitted.
            options: {"sort": {field: 1 | -1}, "skip": int, "limit": int}.

        Returns:
            Rows as plain dicts, in query order.

        Raises:
            SchemaNotFoundError: If entity_name has no registered model.
            ValueError: If a filter, projection or sort field is not a column.
        """
        await self._ensure_initialized()
        model = self._registry.get_model(entity_name)
        table = model.__table__
        columns = table.columns

        filters = dict(filters or {})
        options = dict(options or {})
        requested = [*filters, *(projection or []), *options.get("sort", {})]
        unknown = [name for name in requested if name not in columns]
        if unknown:
            raise ValueError(f"Unknown fields for {table.name}: {unknown}")

        patterns = {k: v for k, v in filters.items() if isinstance(v, re.Pattern)}
        stmt = select(table).where(
            *[columns[k] == v for k, v in filters.items() if k not in patterns]
        )
        for name, direction in options.get("sort", {}).items():
            stmt = stmt.order_by(columns[name].desc() if direction < 0 else columns[name].asc())

        skip = int(options.get("skip", 0))
        limit = options.get("limit")
        if not patterns:
            if skip:
                stmt = stmt.offset(skip)
            if limit is not None:
                stmt = stmt.limit(int(limit))

        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = [dict(row) for row in result.mappings()]

        if patterns:
            rows = [
                row for row in rows
                if all(_matches(row[name], pattern) for name, pattern in patterns.items())
            ]
            rows = rows[skip:]
            if limit is not None:
                rows = rows[: int(limit)]

        if projection:
            rows = [{name: row[name] for name in projection} for row in rows]

        logger.debug(
            "data_access_find",
            model=table.name,
            filter_fields=list(filters),
            result_count=len(rows),
        )
        return rows

    async def dispose(self) -> None:
        """Release the engine's connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
        self._is_init = False
        logger.info("data_access_disposed")
