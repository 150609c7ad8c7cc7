"""
Proxy Server
Forwards quote, chart and search requests to a finance upstream and caches
responses in memory.

Endpoints:
    GET /api/stock/{symbol}?interval=5m&range=1d
    GET /api/search/{query}
    GET /api/health
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from aiohttp import web

from papertrade.services.data_feed.base import build_candles, normalize_symbol
from papertrade.services.data_feed.cache import TTLCache
from papertrade.shared.config import ServerSettings
from papertrade.shared.errors import RateLimited, SymbolNotFound
from papertrade.shared.models import utcnow

from .upstream import StockUpstream

logger = logging.getLogger(__name__)

ALLOWED_INTERVALS = ("1m", "2m", "5m", "15m", "30m", "60m", "90m", "1h", "1d", "5d", "1wk", "1mo", "3mo")
INDIAN_SUFFIXES = (".NS", ".BO")

UPSTREAM_KEY = web.AppKey("upstream", StockUpstream)
CACHE_KEY = web.AppKey("cache", TTLCache)
SETTINGS_KEY = web.AppKey("settings", ServerSettings)


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": True, "message": message}, status=status)


def make_cors_middleware(allowed_origins: List[str]):
    allowed = set(allowed_origins)

    @web.middleware
    async def cors_middleware(request: web.Request, handler):
        response = await handler(request)
        origin = request.headers.get("Origin")
        if origin and origin in allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Methods"] = "GET"
            response.headers["Vary"] = "Origin"
        return response

    return cors_middleware


async def handle_stock(request: web.Request) -> web.Response:
    upstream = request.app[UPSTREAM_KEY]
    cache = request.app[CACHE_KEY]

    symbol = normalize_symbol(request.match_info["symbol"])
    interval = request.query.get("interval", "5m")
    period = request.query.get("range", "1d")

    if interval not in ALLOWED_INTERVALS:
        return _error(400, f"Invalid interval: {interval}")
    if not symbol:
        return _error(404, "Empty symbol")

    logger.info(f"Fetching data for: {symbol} (interval={interval}, range={period})")

    cache_key = f"{symbol}_{interval}_{period}"
    cached = cache.get(cache_key)
    if cached is not None:
        logger.debug(f"Cache hit {cache_key}")
        return web.json_response(cached)

    try:
        quote = await upstream.quote(symbol)
    except SymbolNotFound as e:
        return _error(404, e.message)
    except RateLimited as e:
        return _error(429, e.message)
    except Exception as e:
        logger.error(f"Failed to fetch {symbol}: {e}")
        return _error(500, f"Failed to fetch data: {e}")

    price = quote.get("price")
    if not price:
        logger.warning(f"No price found for {symbol}")
        return _error(404, f"No data found for symbol: {symbol}.")

    chart_data: List[Dict[str, Any]] = []
    try:
        candles = build_candles(await upstream.chart(symbol, interval, period))
        chart_data = [
            {
                "time": candle.time,
                "open": float(candle.open),
                "high": float(candle.high),
                "low": float(candle.low),
                "close": float(candle.close),
                "volume": candle.volume or 0,
            }
            for candle in candles
        ]
    except Exception as e:
        logger.warning(f"Chart data not available for {symbol}: {e}")

    response = {
        "symbol": symbol,
        "name": quote.get("name") or symbol,
        "price": price,
        "change": quote.get("change") or 0,
        "changePercent": quote.get("changePercent") or 0,
        "open": quote.get("open") or price,
        "high": quote.get("high") or price,
        "low": quote.get("low") or price,
        "close": quote.get("previousClose") or price,
        "volume": quote.get("volume") or 0,
        "lastUpdated": utcnow().isoformat(),
        "chartData": chart_data,
    }
    cache.set(cache_key, response)

    logger.info(f"Returned data for {symbol}: {price}")
    return web.json_response(response)


async def handle_search(request: web.Request) -> web.Response:
    upstream = request.app[UPSTREAM_KEY]
    cache = request.app[CACHE_KEY]
    settings = request.app[SETTINGS_KEY]

    query = request.match_info["query"].strip()
    if len(query) < 2:
        return web.json_response([])

    cache_key = f"search:{query.lower()}"
    cached = cache.get(cache_key)
    if cached is not None:
        return web.json_response(cached)

    logger.info(f"Searching for: {query}")
    try:
        hits = await upstream.search(query, settings.search_results)
    except Exception as e:
        logger.error(f"Search failed for {query}: {e}")
        return web.json_response([])

    suggestions = [
        {
            "symbol": hit["symbol"],
            "name": hit.get("shortname") or hit.get("longname") or hit["symbol"],
            "exchange": hit.get("exchange") or "NSE",
            "type": hit.get("quoteType") or "Equity",
        }
        for hit in hits
        if hit.get("symbol", "").endswith(INDIAN_SUFFIXES)
    ]
    cache.set(cache_key, suggestions)
    return web.json_response(suggestions)


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "timestamp": utcnow().isoformat()})


def create_app(
    upstream: Optional[StockUpstream] = None,
    settings: Optional[ServerSettings] = None,
    *,
    clock: Optional[Callable[[], float]] = None,
) -> web.Application:
    """
    Build the proxy application.

    Args:
        upstream: Finance data source (defaults to Yahoo Finance)
        settings: Server settings
        clock: Monotonic clock for cache expiry (tests)
    """
    settings = settings or ServerSettings()
    if upstream is None:
        from .upstream import YahooUpstream
        upstream = YahooUpstream()

    app = web.Application(middlewares=[make_cors_middleware(settings.allowed_origins)])
    app[UPSTREAM_KEY] = upstream
    app[CACHE_KEY] = TTLCache(settings.cache_ttl_seconds, clock=clock, name="proxy")
    app[SETTINGS_KEY] = settings

    app.router.add_get("/api/stock/{symbol}", handle_stock)
    app.router.add_get("/api/search/{query}", handle_search)
    app.router.add_get("/api/health", handle_health)
    return app
