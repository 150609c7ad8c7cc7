"""Quote providers: mock generator, Alpha Vantage, and the local proxy."""

from papertrade.services.data_feed.alpha_vantage_feed import AlphaVantageQuoteProvider
from papertrade.services.data_feed.base import QuoteProvider, build_candles, normalize_symbol
from papertrade.services.data_feed.cache import CacheEntry, TTLCache
from papertrade.services.data_feed.mock_feed import MockQuoteProvider
from papertrade.services.data_feed.proxy_feed import ProxyQuoteProvider

__all__ = [
    "QuoteProvider",
    "MockQuoteProvider",
    "AlphaVantageQuoteProvider",
    "ProxyQuoteProvider",
    "TTLCache",
    "CacheEntry",
    "build_candles",
    "normalize_symbol",
]
