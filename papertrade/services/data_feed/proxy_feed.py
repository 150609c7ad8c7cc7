"""
Proxy Quote Provider
Reads the papertrade proxy server (/api/stock, /api/search).
"""

import logging
from typing import Any, Iterable, Mapping, Sequence
from urllib.parse import quote as url_quote

from papertrade.shared.errors import MarketDataError, NetworkFailure, RateLimited, SymbolNotFound
from papertrade.shared.models import Quote, SymbolSearch

from .base import HttpQuoteProvider, to_decimal, to_price, to_volume

logger = logging.getLogger(__name__)


class ProxyQuoteProvider(HttpQuoteProvider):
    """Same-origin proxy provider; quotes and chart data come from one endpoint."""

    name = "proxy"
    supports_range = True

    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        *,
        default_interval: str = "5m",
        default_range: str = "1d",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._base_url = base_url.rstrip("/")
        self._default_interval = default_interval
        self._default_range = default_range

    async def _stock(self, symbol: str, interval: str, period: str) -> Mapping[str, Any]:
        url = f"{self._base_url}/api/stock/{url_quote(symbol)}"
        status, data = await self._get_json(url, {"interval": interval, "range": period})
        self._raise_for_error(status, data, symbol)
        return data

    @staticmethod
    def _raise_for_error(status: int, data: Any, symbol: str) -> None:
        message = data.get("message") if isinstance(data, dict) else None
        message = message or f"HTTP {status}"
        if status == 404:
            raise SymbolNotFound(message, symbol)
        if status == 429:
            raise RateLimited(message, symbol)
        if status >= 500:
            raise NetworkFailure(message, symbol)
        if status != 200 or not isinstance(data, dict) or data.get("error"):
            raise MarketDataError(message, symbol)

    async def _fetch_quote(self, symbol: str) -> Quote:
        data = await self._stock(symbol, self._default_interval, self._default_range)

        price = to_price(data.get("price"))
        if price is None:
            raise SymbolNotFound(f"No data found for symbol: {symbol}.", symbol)

        return Quote(
            symbol=data.get("symbol") or symbol,
            name=data.get("name"),
            price=price,
            change=to_decimal(data.get("change")),
            change_percent=to_decimal(data.get("changePercent")),
            open=to_price(data.get("open")),
            high=to_price(data.get("high")),
            low=to_price(data.get("low")),
            previous_close=to_price(data.get("close")),
            volume=to_volume(data.get("volume")),
            last_updated=data.get("lastUpdated"),
        )

    async def _fetch_candle_records(
        self,
        symbol: str,
        interval: str,
        period: str,
    ) -> Iterable[Mapping[str, Any]]:
        data = await self._stock(symbol, interval, period)
        return data.get("chartData") or []

    async def _fetch_search(self, keywords: str) -> Sequence[SymbolSearch]:
        url = f"{self._base_url}/api/search/{url_quote(keywords)}"
        status, data = await self._get_json(url)
        if status != 200 or not isinstance(data, list):
            raise MarketDataError(f"Search failed: HTTP {status}")

        return [
            SymbolSearch(
                symbol=item["symbol"],
                name=item.get("name") or item["symbol"],
                type=item.get("type") or "Equity",
                exchange=item.get("exchange"),
            )
            for item in data
        ]
