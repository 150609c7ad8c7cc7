"""Cancellable fixed-interval quote polling."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from papertrade.services.data_feed.base import QuoteProvider
from papertrade.shared.errors import MarketDataError
from papertrade.shared.models import Quote

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 15.0


class QuotePoller:
    """
    Polls ``get_latest_price`` for one symbol on an asyncio task.

    The first poll runs immediately. Market data errors are handed to
    ``on_error``; any other exception is logged. Polling continues either
    way. ``stop`` cancels the task and waits for it to finish.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        symbol: str,
        on_quote: Callable[[Quote], None],
        *,
        on_error: Optional[Callable[[MarketDataError], None]] = None,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        self._provider = provider
        self._symbol = symbol
        self._on_quote = on_quote
        self._on_error = on_error
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name=f"poll:{self._symbol}")
        logger.info(f"Polling {self._symbol} every {self._interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception(f"Poller for {self._symbol} had failed")
        self._task = None
        logger.info(f"Stopped polling {self._symbol}")

    async def poll_once(self) -> Optional[Quote]:
        try:
            quote = await self._provider.get_latest_price(self._symbol)
        except MarketDataError as e:
            logger.warning(f"Poll failed for {self._symbol}: {e}")
            if self._on_error:
                self._on_error(e)
            return None
        self._on_quote(quote)
        return quote

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception(f"Unexpected error polling {self._symbol}")
            await asyncio.sleep(self._interval)
