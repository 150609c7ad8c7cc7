"""
Abstract Quote Provider Interface
Base class for interchangeable market data upstreams.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence

import aiohttp

from papertrade.shared.errors import MarketDataError, NetworkFailure, NoChartData, SymbolNotFound
from papertrade.shared.models import Candle, Quote, SymbolSearch

from .cache import DEFAULT_TTL_SECONDS, TTLCache

logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".NS"
MIN_SEARCH_LENGTH = 2

# (url, params) -> (http status, decoded json body)
JsonFetcher = Callable[[str, Mapping[str, str]], Awaitable[tuple[int, Any]]]


def normalize_symbol(symbol: str, default_suffix: str = DEFAULT_SUFFIX) -> str:
    """
    Normalize symbol to canonical form.

    Trims and uppercases; symbols without an exchange suffix get the
    default market suffix. Idempotent.

    Args:
        symbol: Raw user-entered symbol
        default_suffix: Suffix appended when no '.' is present

    Returns:
        Normalized symbol string (empty input stays empty)
    """
    clean = symbol.strip().upper()
    if clean and "." not in clean:
        return f"{clean}{default_suffix}"
    return clean


def to_price(value: Any) -> Optional[Decimal]:
    """Parse a provider price field; missing, NaN and non-positive values give None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if price.is_nan() or price <= 0:
        return None
    return price


def to_decimal(value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Parse a signed numeric field such as change or '1.25%'."""
    if value is None:
        return default
    try:
        parsed = Decimal(str(value).strip().rstrip("%"))
    except (InvalidOperation, ValueError):
        return default
    return default if parsed.is_nan() else parsed


def to_volume(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, OverflowError):
        return None


def build_candles(records: Iterable[Mapping[str, Any]]) -> list[Candle]:
    """
    Turn raw bar records into an ordered candle series.

    Records missing any of open/high/low/close are dropped; the rest are
    sorted ascending by time, and a later record with the same time
    replaces an earlier one.

    Args:
        records: Mappings with time, open, high, low, close and optional volume

    Returns:
        Candles ordered by time, unique per timestamp
    """
    by_time: dict[int, Candle] = {}
    for record in records:
        prices = [to_price(record.get(field)) for field in ("open", "high", "low", "close")]
        if any(price is None for price in prices) or record.get("time") is None:
            continue
        open_, high, low, close = prices
        by_time[int(record["time"])] = Candle(
            time=int(record["time"]),
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=to_volume(record.get("volume")),
        )
    return [by_time[ts] for ts in sorted(by_time)]


class QuoteProvider(ABC):
    """
    Abstract base class for quote providers.

    Each upstream (mock generator, third-party API, local proxy) implements
    the fetch hooks; normalization and the cache-then-fetch discipline
    live here so every variant returns the same Quote / Candle /
    SymbolSearch shapes.
    """

    name: str = "base"
    supports_range: bool = False

    def __init__(
        self,
        *,
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        default_suffix: str = DEFAULT_SUFFIX,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """
        Initialize quote provider.

        Args:
            cache_ttl_seconds: Lifetime of cached quotes, candles and searches
            default_suffix: Market suffix for symbols without one
            clock: Monotonic clock used for cache expiry
        """
        self._default_suffix = default_suffix
        self._quote_cache: TTLCache[Quote] = TTLCache(cache_ttl_seconds, clock=clock, name=f"{self.name}:quote")
        self._chart_cache: TTLCache[tuple[Candle, ...]] = TTLCache(
            cache_ttl_seconds, clock=clock, name=f"{self.name}:chart"
        )
        self._search_cache: TTLCache[tuple[SymbolSearch, ...]] = TTLCache(
            cache_ttl_seconds, clock=clock, name=f"{self.name}:search"
        )

    def normalize(self, symbol: str) -> str:
        return normalize_symbol(symbol, self._default_suffix)

    def chart_cache_key(self, symbol: str, interval: str, period: str) -> str:
        if self.supports_range:
            return f"{symbol}_{interval}_{period}"
        return f"{symbol}_{interval}"

    def cached_quote(self, symbol: str) -> Optional[Quote]:
        """Return the still-fresh cached quote for a symbol without fetching."""
        return self._quote_cache.get(self.normalize(symbol))

    async def connect(self) -> None:
        """Open upstream resources (no-op by default)."""

    async def disconnect(self) -> None:
        """Release upstream resources (no-op by default)."""

    async def get_latest_price(self, symbol: str) -> Quote:
        """
        Get the latest quote for a symbol.

        Raises:
            SymbolNotFound: Upstream has no such instrument
            RateLimited: Upstream quota exhausted
            NetworkFailure: Upstream unreachable
        """
        formatted = self.normalize(symbol)
        if not formatted:
            raise SymbolNotFound("Empty symbol", symbol)

        cached = self._quote_cache.get(formatted)
        if cached is not None:
            return cached

        try:
            quote = await self._fetch_quote(formatted)
        except MarketDataError as e:
            logger.error(f"{self.name} quote error for {formatted}: {e}")
            raise

        self._quote_cache.set(formatted, quote)
        logger.info(f"{self.name} quote {formatted} @ {quote.price}")
        return quote

    async def get_historical_data(
        self,
        symbol: str,
        interval: str = "5m",
        period: str = "1d",
    ) -> tuple[Candle, ...]:
        """
        Get the candle series for a symbol, ascending by time.

        Args:
            symbol: Symbol identifier
            interval: Candle interval (1m, 5m, 15m, 1h, 1d, ...)
            period: Range covered, for providers that support it (1d, 5d, 1mo, ...)

        Raises:
            NoChartData: No usable bars were returned
        """
        formatted = self.normalize(symbol)
        if not formatted:
            raise SymbolNotFound("Empty symbol", symbol)

        cache_key = self.chart_cache_key(formatted, interval, period)
        cached = self._chart_cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            records = await self._fetch_candle_records(formatted, interval, period)
            candles = tuple(build_candles(records))
            if not candles:
                raise NoChartData("No chart data found for this symbol", formatted)
        except MarketDataError as e:
            logger.error(f"{self.name} chart error for {cache_key}: {e}")
            raise

        self._chart_cache.set(cache_key, candles)
        logger.info(f"{self.name} fetched {len(candles)} candles for {cache_key}")
        return candles

    async def search_symbols(self, keywords: str) -> tuple[SymbolSearch, ...]:
        """
        Search symbols by free text.

        Search is advisory: short queries and upstream failures both yield
        an empty result instead of an error.
        """
        query = (keywords or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return ()

        cached = self._search_cache.get(query)
        if cached is not None:
            return cached

        try:
            results = tuple(await self._fetch_search(query))
        except Exception as e:
            logger.warning(f"{self.name} symbol search failed for {query!r}: {e}")
            return ()

        self._search_cache.set(query, results)
        return results

    @abstractmethod
    async def _fetch_quote(self, symbol: str) -> Quote:
        """
        Fetch and map a quote for an already-normalized symbol.

        Raises:
            MarketDataError: On any upstream failure
        """
        pass

    @abstractmethod
    async def _fetch_candle_records(
        self,
        symbol: str,
        interval: str,
        period: str,
    ) -> Iterable[Mapping[str, Any]]:
        """
        Fetch raw bar records (time, open, high, low, close, volume).

        Filtering, ordering and deduplication are done by the caller.
        """
        pass

    @abstractmethod
    async def _fetch_search(self, keywords: str) -> Sequence[SymbolSearch]:
        """Fetch symbol suggestions for a query of at least two characters."""
        pass


class HttpQuoteProvider(QuoteProvider):
    """Quote provider backed by a JSON-over-HTTP upstream."""

    def __init__(
        self,
        *,
        timeout_seconds: float = 10.0,
        fetch_json: JsonFetcher | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._timeout_seconds = timeout_seconds
        self._fetch_json = fetch_json
        self._session: Optional[aiohttp.ClientSession] = None

    async def connect(self) -> None:
        if self._fetch_json is None and (self._session is None or self._session.closed):
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout_seconds)
            )
            logger.info(f"{self.name} provider connected")

    async def disconnect(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            logger.info(f"{self.name} provider disconnected")
        self._session = None

    async def _get_json(self, url: str, params: Mapping[str, str] | None = None) -> tuple[int, Any]:
        """
        GET a JSON document.

        Raises:
            NetworkFailure: Transport error, timeout or undecodable body
        """
        params = dict(params or {})
        if self._fetch_json is not None:
            return await self._fetch_json(url, params)

        await self.connect()
        try:
            async with self._session.get(url, params=params) as response:
                payload = await response.json(content_type=None)
                return response.status, payload
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise NetworkFailure(f"Request to {self.name} failed: {e}", params.get("symbol")) from e
