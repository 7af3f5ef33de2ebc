"""
Ruten Shoplist — Request Pacer

Sequential task queue with a fixed delay before every task. Used to keep a
uniform request cadence against the marketplace: the delay happens whether
or not the previous task failed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

import structlog

from rutenshop.config import settings

logger = structlog.get_logger(__name__)

ItemT = TypeVar("ItemT")
ResultT = TypeVar("ResultT")


class RequestPacer:
    """
    Runs one worker call per item, in order, with a delay before each call.

    Usage:
        pacer = RequestPacer(interval_seconds=0.15)
        results = await pacer.run(shops, probe_shop)
    """

    def __init__(
        self,
        interval_seconds: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.CROSS_SELL_DELAY_SECONDS
        )
        self._sleep = sleep

    async def run(
        self,
        items: Iterable[ItemT],
        worker: Callable[[ItemT], Awaitable[ResultT]],
    ) -> list[ResultT | Exception]:
        """
        Process items sequentially.

        Returns:
            One slot per item: the worker's result, or the Exception it raised.
        """
        results: list[ResultT | Exception] = []
        for idx, item in enumerate(items):
            await self._sleep(self.interval_seconds)
            try:
                results.append(await worker(item))
            except Exception as e:
                logger.warning(
                    "pacer_task_failed",
                    index=idx,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                results.append(e)
        return results
