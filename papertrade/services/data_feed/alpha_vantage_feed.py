"""
Alpha Vantage Quote Provider
REST implementation over the Alpha Vantage query endpoint.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from papertrade.shared.errors import NetworkFailure, NoChartData, RateLimited, SymbolNotFound
from papertrade.shared.models import Quote, SymbolSearch

from .base import HttpQuoteProvider, to_decimal, to_price, to_volume

logger = logging.getLogger(__name__)

BASE_URL = "https://www.alphavantage.co/query"
RATE_LIMIT_KEYS = ("Note", "Information")


class AlphaVantageQuoteProvider(HttpQuoteProvider):
    """
    Alpha Vantage provider.

    Features:
    - GLOBAL_QUOTE for latest prices
    - TIME_SERIES_INTRADAY for candles (no range support)
    - SYMBOL_SEARCH for suggestions
    """

    name = "alpha_vantage"
    supports_range = False

    def __init__(self, api_key: str, *, base_url: str = BASE_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._base_url = base_url

        if not api_key:
            logger.warning("Alpha Vantage API key not configured - requests will be rejected upstream")

    async def _query(self, function: str, symbol: str | None = None, **params: str) -> Dict[str, Any]:
        query = {"function": function, "apikey": self._api_key, **params}
        if symbol is not None:
            query["symbol"] = symbol
        status, data = await self._get_json(self._base_url, query)

        if status != 200 or not isinstance(data, dict):
            raise NetworkFailure(f"Unexpected Alpha Vantage response: HTTP {status}", symbol)
        if data.get("Error Message"):
            raise SymbolNotFound("Symbol not found", symbol)
        for key in RATE_LIMIT_KEYS:
            if data.get(key):
                raise RateLimited(f"API rate limit reached: {data[key]}", symbol)
        return data

    async def _fetch_quote(self, symbol: str) -> Quote:
        data = await self._query("GLOBAL_QUOTE", symbol)

        quote = data.get("Global Quote") or {}
        price = to_price(quote.get("05. price"))
        if price is None:
            raise SymbolNotFound("No data found for this symbol", symbol)

        return Quote(
            symbol=symbol,
            price=price,
            change=to_decimal(quote.get("09. change")),
            change_percent=to_decimal(quote.get("10. change percent")),
            open=to_price(quote.get("02. open")),
            high=to_price(quote.get("03. high")),
            low=to_price(quote.get("04. low")),
            previous_close=to_price(quote.get("08. previous close")),
            volume=to_volume(quote.get("06. volume")),
            last_updated=quote.get("07. latest trading day"),
        )

    async def _fetch_candle_records(
        self,
        symbol: str,
        interval: str,
        period: str,
    ) -> Iterable[Mapping[str, Any]]:
        av_interval = self._to_av_interval(interval)
        data = await self._query(
            "TIME_SERIES_INTRADAY",
            symbol,
            interval=av_interval,
            outputsize="compact",
        )

        series = data.get(f"Time Series ({av_interval})")
        if not series:
            raise NoChartData("No chart data found for this symbol", symbol)

        tz = self._series_timezone(data.get("Meta Data") or {})
        records: List[Dict[str, Any]] = []
        for stamp, values in series.items():
            try:
                moment = datetime.strptime(stamp, "%Y-%m-%d %H:%M:%S").replace(tzinfo=tz)
            except ValueError:
                logger.warning(f"Skipping bar with unparseable time {stamp!r} for {symbol}")
                continue
            records.append({
                "time": int(moment.timestamp()),
                "open": values.get("1. open"),
                "high": values.get("2. high"),
                "low": values.get("3. low"),
                "close": values.get("4. close"),
                "volume": values.get("5. volume"),
            })
        return records

    async def _fetch_search(self, keywords: str) -> Sequence[SymbolSearch]:
        data = await self._query("SYMBOL_SEARCH", keywords=keywords)

        results = []
        for item in data.get("bestMatches") or []:
            results.append(
                SymbolSearch(
                    symbol=item["1. symbol"],
                    name=item.get("2. name", item["1. symbol"]),
                    type=item.get("3. type", "Equity"),
                    region=item.get("4. region"),
                    match_score=to_decimal(item.get("9. matchScore")),
                )
            )
        return results

    @staticmethod
    def _to_av_interval(interval: str) -> str:
        """Convert 5m style intervals to Alpha Vantage's 5min."""
        mapping = {
            "1m": "1min",
            "5m": "5min",
            "15m": "15min",
            "30m": "30min",
            "60m": "60min",
            "1h": "60min",
        }
        return mapping.get(interval, interval)

    @staticmethod
    def _series_timezone(meta: Mapping[str, Any]):
        name = next((value for key, value in meta.items() if key.endswith("Time Zone")), None)
        if not name:
            return timezone.utc
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown time zone {name!r}, assuming UTC")
            return timezone.utc
