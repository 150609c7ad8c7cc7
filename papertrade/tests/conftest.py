from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Sequence

import pytest

from papertrade.services.data_feed.base import QuoteProvider
from papertrade.services.execution.order_engine import OrderEngine
from papertrade.shared.errors import MarketDataError, SymbolNotFound
from papertrade.shared.models import Quote, SymbolSearch


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Stands in for the HTTP transport of HttpQuoteProvider."""

    def __init__(self, respond: Callable[[str, Mapping[str, str]], tuple[int, Any]]) -> None:
        self._respond = respond
        self.calls: list[tuple[str, dict[str, str]]] = []

    async def __call__(self, url: str, params: Mapping[str, str]) -> tuple[int, Any]:
        self.calls.append((url, dict(params)))
        return self._respond(url, params)


class StubProvider(QuoteProvider):
    """In-memory provider with settable prices and call counters."""

    name = "stub"

    def __init__(
        self,
        prices: Mapping[str, Decimal] | None = None,
        *,
        candles: Iterable[Mapping[str, Any]] = (),
        hits: Sequence[SymbolSearch] = (),
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.prices: dict[str, Decimal] = {k: Decimal(v) for k, v in (prices or {}).items()}
        self.candles = list(candles)
        self.hits = list(hits)
        self.search_error: Exception | None = None
        self.quote_error: MarketDataError | None = None
        self.calls = {"quote": 0, "chart": 0, "search": 0}

    def set_price(self, symbol: str, price: Decimal | str) -> None:
        formatted = self.normalize(symbol)
        self.prices[formatted] = Decimal(price)
        self._quote_cache.invalidate(formatted)

    async def _fetch_quote(self, symbol: str) -> Quote:
        self.calls["quote"] += 1
        if self.quote_error is not None:
            raise self.quote_error
        if symbol not in self.prices:
            raise SymbolNotFound("Symbol not found", symbol)
        return Quote(symbol=symbol, price=self.prices[symbol])

    async def _fetch_candle_records(self, symbol: str, interval: str, period: str):
        self.calls["chart"] += 1
        return self.candles

    async def _fetch_search(self, keywords: str) -> Sequence[SymbolSearch]:
        self.calls["search"] += 1
        if self.search_error is not None:
            raise self.search_error
        return self.hits


class FakeUpstream:
    """Scripted finance upstream for the proxy server."""

    def __init__(self) -> None:
        self.quotes: dict[str, dict[str, Any]] = {
            "RELIANCE.NS": {
                "name": "Reliance Industries Limited",
                "price": 2450.0,
                "change": 12.5,
                "changePercent": 0.51,
                "open": 2440.0,
                "high": 2460.0,
                "low": 2430.0,
                "previousClose": 2437.5,
                "volume": 3100000,
            },
        }
        self.bars: list[dict[str, Any]] = [
            {"time": 1792142400, "open": 2445.0, "high": 2450.0, "low": 2440.0, "close": 2449.0, "volume": 10},
            {"time": 1792142100, "open": 2440.0, "high": 2446.0, "low": 2438.0, "close": 2445.0, "volume": 12},
            {"time": 1792142700, "open": None, "high": 2451.0, "low": 2447.0, "close": 2450.0, "volume": 3},
        ]
        self.hits: list[dict[str, Any]] = [
            {"symbol": "RELIANCE.NS", "shortname": "RELIANCE INDS", "exchange": "NSI", "quoteType": "EQUITY"},
            {"symbol": "RELI", "shortname": "Reliance Global Group", "exchange": "NCM", "quoteType": "EQUITY"},
            {"symbol": "RELIANCE.BO", "longname": "Reliance Industries Limited"},
        ]
        self.quote_error: Exception | None = None
        self.chart_error: Exception | None = None
        self.search_error: Exception | None = None
        self.calls = {"quote": 0, "chart": 0, "search": 0}

    async def quote(self, symbol: str) -> dict[str, Any]:
        self.calls["quote"] += 1
        if self.quote_error is not None:
            raise self.quote_error
        if symbol not in self.quotes:
            raise SymbolNotFound(f"No data found for symbol: {symbol}.", symbol)
        return dict(self.quotes[symbol])

    async def chart(self, symbol: str, interval: str, period: str) -> list[dict[str, Any]]:
        self.calls["chart"] += 1
        if self.chart_error is not None:
            raise self.chart_error
        return list(self.bars)

    async def search(self, query: str, limit: int) -> list[dict[str, Any]]:
        self.calls["search"] += 1
        if self.search_error is not None:
            raise self.search_error
        return self.hits[:limit]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider(clock: FakeClock) -> StubProvider:
    return StubProvider(
        {"RELIANCE.NS": Decimal("2450.00"), "TCS.NS": Decimal("3850.00")},
        clock=clock,
    )


@pytest.fixture
def engine(provider: StubProvider) -> OrderEngine:
    return OrderEngine(provider)
