"""
Ruten Shoplist — Shared pytest Fixtures & Configuration

Provides common fixtures for all test modules:
- Seeded card store (aiosqlite temp file)
- Data access service bound to it
- Async test support via pytest-asyncio
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rutenshop.data_access import DataAccessService
from rutenshop.models import Base, Card
from rutenshop.utils.pacer import RequestPacer


# ---------------------------------------------------------------------------
# Card store
# ---------------------------------------------------------------------------

SEED_CARDS: list[dict[str, Any]] = [
    {"id": "12345", "name": "青眼白龍", "number": "QCCU-JP001", "rarity": ["UR", "SR"]},
    {"id": "67890", "name": "黑魔導", "number": "QCCU-JP002", "rarity": ["SER", "PSER"]},
    {"id": "55555", "name": "灰流麗", "number": None, "rarity": ["N"]},
]


@pytest_asyncio.fixture
async def card_db_url(tmp_path: Path) -> AsyncGenerator[str, None]:
    """
    SQLite card store on a temp file, seeded with SEED_CARDS.

    A file (not :memory:) so every new connection sees the same data.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'cards.db'}"
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all([Card(**card) for card in SEED_CARDS])
        await session.commit()

    await engine.dispose()
    yield url


@pytest_asyncio.fixture
async def data_access(card_db_url: str) -> AsyncGenerator[DataAccessService, None]:
    service = DataAccessService(database_url=card_db_url)
    yield service
    await service.dispose()


# ---------------------------------------------------------------------------
# Utility Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def no_delay_pacer() -> RequestPacer:
    """Pacer that keeps call order but does not wait."""
    return RequestPacer(interval_seconds=0)

