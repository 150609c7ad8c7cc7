"""
Trading Session
Composition root that owns the quote provider, the order engine and the
pollers watching symbols.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from papertrade.runner.poller import DEFAULT_POLL_INTERVAL_SECONDS, QuotePoller
from papertrade.services.data_feed.base import QuoteProvider
from papertrade.services.execution.order_engine import OrderEngine
from papertrade.services.feed_factory import create_quote_provider
from papertrade.services.monitoring.state_query import build_portfolio_snapshot
from papertrade.shared.config import AppSettings, get_settings
from papertrade.shared.errors import MarketDataError
from papertrade.shared.models import Order, OrderIntent, OrderSide, OrderType, PortfolioSnapshot, Quote

logger = logging.getLogger(__name__)


class TradingSession:
    """
    One user's paper-trading session.

    Keeps the latest observed quote per symbol, marks positions to it when
    a portfolio snapshot is requested, and feeds observed quotes to limit
    order matching.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        engine: OrderEngine,
        *,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        match_limit_orders: bool = True,
    ) -> None:
        self.provider = provider
        self.engine = engine
        self._poll_interval = poll_interval_seconds
        self._match_limit_orders = match_limit_orders
        self._quotes: Dict[str, Quote] = {}
        self._errors: Dict[str, MarketDataError] = {}
        self._pollers: Dict[str, QuotePoller] = {}

    @property
    def latest_quotes(self) -> Dict[str, Quote]:
        return self._quotes.copy()

    @property
    def watched_symbols(self) -> List[str]:
        return list(self._pollers)

    def last_error(self, symbol: str) -> Optional[MarketDataError]:
        return self._errors.get(self.provider.normalize(symbol))

    def observe_quote(self, quote: Quote) -> List[Order]:
        """Record a quote; returns limit orders it filled or cancelled."""
        self._quotes[quote.symbol] = quote
        self._errors.pop(quote.symbol, None)
        if not self._match_limit_orders:
            return []
        return self.engine.match_limit_orders(quote)

    def _record_error(self, symbol: str, error: MarketDataError) -> None:
        self._errors[symbol] = error

    async def refresh_quote(self, symbol: str) -> Quote:
        quote = await self.provider.get_latest_price(symbol)
        self.observe_quote(quote)
        return quote

    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        quantity: int,
        *,
        order_type: OrderType = OrderType.MARKET,
        limit_price: Optional[Decimal] = None,
    ) -> Order:
        intent = OrderIntent(symbol=symbol, side=side, order_type=order_type, quantity=quantity)
        order = await self.engine.place_order(intent, limit_price)

        # execution quote, if it is still cached; never refetched here
        quote = self.provider.cached_quote(order.symbol)
        if quote is not None:
            self._quotes[quote.symbol] = quote
        return order

    def watch(self, symbol: str) -> QuotePoller:
        """Start polling a symbol (no-op if already watched)."""
        formatted = self.provider.normalize(symbol)
        poller = self._pollers.get(formatted)
        if poller is None:
            poller = QuotePoller(
                self.provider,
                formatted,
                self.observe_quote,
                on_error=lambda error: self._record_error(formatted, error),
                interval_seconds=self._poll_interval,
            )
            self._pollers[formatted] = poller
        poller.start()
        return poller

    async def unwatch(self, symbol: str) -> None:
        poller = self._pollers.pop(self.provider.normalize(symbol), None)
        if poller is not None:
            await poller.stop()

    async def switch_symbol(self, symbol: str) -> QuotePoller:
        """Tear down every other poller and watch only ``symbol``."""
        formatted = self.provider.normalize(symbol)
        for watched in [s for s in self._pollers if s != formatted]:
            await self.unwatch(watched)
        return self.watch(formatted)

    def portfolio(self) -> PortfolioSnapshot:
        return build_portfolio_snapshot(
            self.engine.get_balance(),
            self.engine.get_positions(),
            self.engine.get_orders(),
            self._quotes,
        )

    async def close(self) -> None:
        for symbol in list(self._pollers):
            await self.unwatch(symbol)
        await self.provider.disconnect()


def build_session(
    settings: Optional[AppSettings] = None,
    *,
    provider: Optional[QuoteProvider] = None,
) -> TradingSession:
    """
    Build a session from settings.

    Args:
        settings: Application settings (None reads the cached settings)
        provider: Use this provider instead of the configured one
    """
    settings = settings or get_settings()
    provider = provider or create_quote_provider(settings)
    engine = OrderEngine(
        provider,
        initial_balance=settings.ledger.initial_balance,
        strict=settings.ledger.strict,
    )
    logger.info(
        f"Session ready: provider={provider.name} balance={settings.ledger.initial_balance} "
        f"strict={settings.ledger.strict}"
    )
    return TradingSession(
        provider,
        engine,
        poll_interval_seconds=settings.polling.interval_seconds,
        match_limit_orders=settings.ledger.match_limit_orders,
    )
