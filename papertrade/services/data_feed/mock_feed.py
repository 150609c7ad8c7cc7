"""
Mock Quote Provider
Seeded random-walk prices for a small NSE catalog; no network access.
"""

import logging
import random
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from papertrade.shared.errors import SymbolNotFound
from papertrade.shared.models import Quote, SymbolSearch, utcnow

from .base import QuoteProvider

logger = logging.getLogger(__name__)

TICK = Decimal("0.01")
MAX_BARS = 500

# symbol -> (name, reference price)
DEFAULT_CATALOG: Dict[str, tuple[str, Decimal]] = {
    "RELIANCE.NS": ("Reliance Industries Limited", Decimal("2450.00")),
    "TCS.NS": ("Tata Consultancy Services Limited", Decimal("3850.00")),
    "HDFCBANK.NS": ("HDFC Bank Limited", Decimal("1650.00")),
    "INFY.NS": ("Infosys Limited", Decimal("1480.00")),
    "ICICIBANK.NS": ("ICICI Bank Limited", Decimal("1020.00")),
    "SBIN.NS": ("State Bank of India", Decimal("620.00")),
    "TATAMOTORS.NS": ("Tata Motors Limited", Decimal("780.00")),
    "TATASTEEL.NS": ("Tata Steel Limited", Decimal("140.00")),
    "ITC.NS": ("ITC Limited", Decimal("440.00")),
    "WIPRO.NS": ("Wipro Limited", Decimal("460.00")),
    "BHARTIARTL.NS": ("Bharti Airtel Limited", Decimal("1150.00")),
    "RELIANCE.BO": ("Reliance Industries Limited", Decimal("2451.00")),
}

INTERVAL_SECONDS: Dict[str, int] = {
    "1m": 60, "2m": 120, "5m": 300, "15m": 900, "30m": 1800,
    "60m": 3600, "90m": 5400, "1h": 3600, "1d": 86400, "5d": 432000,
    "1wk": 604800, "1mo": 2592000, "3mo": 7776000,
}

RANGE_SECONDS: Dict[str, int] = {
    "1d": 86400, "5d": 432000, "1mo": 2592000, "3mo": 7776000,
    "6mo": 15552000, "1y": 31536000, "2y": 63072000, "5y": 157680000,
}


class MockQuoteProvider(QuoteProvider):
    """
    Offline quote provider.

    Every fresh quote takes one gaussian step from the previous price;
    candles are a random walk ending at the current price. Symbols outside
    the catalog raise SymbolNotFound unless pinned with ``set_price``.
    """

    name = "mock"
    supports_range = True

    def __init__(
        self,
        *,
        seed: Optional[int] = None,
        volatility_pct: Decimal = Decimal("0.5"),
        catalog: Optional[Mapping[str, tuple[str, Decimal]]] = None,
        wall_clock=time.time,
        **kwargs: Any,
    ) -> None:
        """
        Initialize mock provider.

        Args:
            seed: Seed for reproducible prices
            volatility_pct: Standard deviation of one price step, in percent
            catalog: symbol -> (name, reference price); defaults to NSE large caps
            wall_clock: Source of Unix time for candle timestamps
        """
        super().__init__(**kwargs)
        self._rng = random.Random(seed)
        self._volatility = float(volatility_pct) / 100.0
        self._catalog: Dict[str, tuple[str, Decimal]] = dict(catalog or DEFAULT_CATALOG)
        self._last_prices: Dict[str, Decimal] = {}
        self._pinned: Dict[str, Decimal] = {}
        self._wall_clock = wall_clock

    def set_price(self, symbol: str, price: Decimal) -> None:
        """
        Pin the next quote for a symbol to an exact price.

        The cached quote for the symbol is dropped so the next read sees it.
        """
        formatted = self.normalize(symbol)
        if formatted not in self._catalog:
            self._catalog[formatted] = (formatted.split(".")[0], Decimal(price))
        self._pinned[formatted] = Decimal(price)
        self._quote_cache.invalidate(formatted)

    def _reference(self, symbol: str) -> tuple[str, Decimal]:
        try:
            return self._catalog[symbol]
        except KeyError:
            raise SymbolNotFound("Symbol not found", symbol) from None

    def _step(self, price: Decimal) -> Decimal:
        factor = Decimal(str(1.0 + self._rng.gauss(0.0, self._volatility)))
        return max(TICK, (price * factor).quantize(TICK, rounding=ROUND_HALF_UP))

    async def _fetch_quote(self, symbol: str) -> Quote:
        name, reference = self._reference(symbol)
        if symbol in self._pinned:
            price = self._pinned.pop(symbol)
        else:
            price = self._step(self._last_prices.get(symbol, reference))
        self._last_prices[symbol] = price

        change = price - reference
        change_percent = (change / reference * 100).quantize(Decimal("0.0001"))
        high = max(price, reference)
        low = min(price, reference)
        now = utcnow()
        return Quote(
            symbol=symbol,
            name=name,
            price=price,
            change=change,
            change_percent=change_percent,
            open=reference,
            high=high,
            low=low,
            previous_close=reference,
            volume=self._rng.randint(100_000, 5_000_000),
            last_updated=now.date().isoformat(),
            timestamp=now,
        )

    async def _fetch_candle_records(
        self,
        symbol: str,
        interval: str,
        period: str,
    ) -> Iterable[Mapping[str, Any]]:
        _, reference = self._reference(symbol)
        step_seconds = INTERVAL_SECONDS.get(interval, 300)
        span_seconds = RANGE_SECONDS.get(period, 86400)
        count = max(1, min(MAX_BARS, span_seconds // step_seconds))

        end = int(self._wall_clock()) // step_seconds * step_seconds
        close = self._last_prices.get(symbol, reference)
        records: List[Dict[str, Any]] = []
        # walk backwards from the latest close
        for index in range(count):
            open_ = self._step(close)
            wiggle = Decimal(str(abs(self._rng.gauss(0.0, self._volatility / 2))))
            high = (max(open_, close) * (1 + wiggle)).quantize(TICK)
            low = max(TICK, (min(open_, close) * (1 - wiggle)).quantize(TICK))
            records.append({
                "time": end - index * step_seconds,
                "open": open_,
                "high": high,
                "low": low,
                "close": close,
                "volume": self._rng.randint(1_000, 200_000),
            })
            close = open_
        return records

    async def _fetch_search(self, keywords: str) -> Sequence[SymbolSearch]:
        needle = keywords.upper()
        results = []
        for symbol, (name, _) in self._catalog.items():
            if needle in symbol or needle in name.upper():
                exchange = "BSE" if symbol.endswith(".BO") else "NSE"
                results.append(
                    SymbolSearch(symbol=symbol, name=name, type="Equity", region="India", exchange=exchange)
                )
        return results
