"""Pacing between page fetches."""
import asyncio
import logging
from typing import Awaitable, Callable

from pricewatch.config import config
from pricewatch.fetch.sources import SourceKind

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class RequestPacer:
    """Fixed pause after every fetch; marketplace pages get the longer one."""

    def __init__(
        self,
        marketplace_delay: float | None = None,
        default_delay: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.marketplace_delay = (
            config.MARKETPLACE_DELAY if marketplace_delay is None else marketplace_delay
        )
        self.default_delay = config.DEFAULT_DELAY if default_delay is None else default_delay
        self._sleep = sleep
        self.total_wait = 0.0

    def delay_for(self, source: SourceKind) -> float:
        if source is SourceKind.MARKETPLACE:
            return self.marketplace_delay
        return self.default_delay

    async def wait_after(self, source: SourceKind) -> None:
        """Sleep the delay for `source`."""
        delay = self.delay_for(source)
        if delay <= 0:
            return
        logger.debug(f"Waiting {delay:.1f}s after {source.value} fetch")
        self.total_wait += delay
        await self._sleep(delay)
