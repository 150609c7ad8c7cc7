"""
Quote Provider Factory
Builds the quote provider selected by MARKET_DATA_PROVIDER.

Usage:
    from papertrade.services.feed_factory import create_quote_provider

    provider = create_quote_provider()    # provider for the current settings
"""

import logging
from typing import Callable, Optional

from papertrade.services.data_feed.base import QuoteProvider
from papertrade.shared.config import AppSettings, get_settings
from papertrade.shared.models import FeedKind

logger = logging.getLogger(__name__)


def create_quote_provider(
    settings: Optional[AppSettings] = None,
    *,
    kind: Optional[FeedKind] = None,
    clock: Optional[Callable[[], float]] = None,
) -> QuoteProvider:
    """
    Create a quote provider from settings.

    Args:
        settings: Application settings (None reads the cached settings)
        kind: Override the configured provider kind
        clock: Monotonic clock for cache expiry (tests)

    Returns:
        The configured QuoteProvider instance
    """
    settings = settings or get_settings()
    kind = kind or settings.market_data.provider
    common = {
        "cache_ttl_seconds": settings.market_data.cache_ttl_seconds,
        "default_suffix": settings.market_data.default_suffix,
        "clock": clock,
    }

    if kind == FeedKind.MOCK:
        from papertrade.services.data_feed.mock_feed import MockQuoteProvider
        logger.info(f"Creating mock quote provider (seed={settings.mock_feed.seed})")
        return MockQuoteProvider(
            seed=settings.mock_feed.seed,
            volatility_pct=settings.mock_feed.volatility_pct,
            **common,
        )

    elif kind == FeedKind.ALPHA_VANTAGE:
        from papertrade.services.data_feed.alpha_vantage_feed import AlphaVantageQuoteProvider
        logger.info("Creating Alpha Vantage quote provider")
        return AlphaVantageQuoteProvider(
            settings.alpha_vantage.api_key,
            base_url=settings.alpha_vantage.base_url,
            timeout_seconds=settings.alpha_vantage.timeout_seconds,
            **common,
        )

    elif kind == FeedKind.PROXY:
        from papertrade.services.data_feed.proxy_feed import ProxyQuoteProvider
        logger.info(f"Creating proxy quote provider ({settings.proxy.base_url})")
        return ProxyQuoteProvider(
            settings.proxy.base_url,
            default_interval=settings.market_data.default_interval,
            default_range=settings.market_data.default_range,
            timeout_seconds=settings.proxy.timeout_seconds,
            **common,
        )

    else:
        raise ValueError(f"Unsupported quote provider: {kind}")
