"""Typed errors for market data and order handling."""

from __future__ import annotations

from typing import Optional


class PaperTradeError(Exception):
    """Base class for papertrade errors."""


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Market data
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class MarketDataError(PaperTradeError):
    """Raised by quote providers when market data cannot be resolved."""

    def __init__(self, message: str, symbol: Optional[str] = None) -> None:
        self.symbol = symbol
        self.message = message
        prefix = f"[{symbol}] " if symbol else ""
        super().__init__(f"{prefix}{message}")


class SymbolNotFound(MarketDataError):
    """Upstream has no such instrument."""


class RateLimited(MarketDataError):
    """Upstream quota exhausted."""


class NoChartData(MarketDataError):
    """History query returned no usable bars."""


class NetworkFailure(MarketDataError):
    """Transport-level failure reaching the upstream."""


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Orders
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class OrderError(PaperTradeError):
    """Base class for order lifecycle errors."""


class OrderRejected(OrderError):
    """Raised in strict ledger mode when an order fails a balance/holdings check."""


class OrderNotFound(OrderError):
    """No order with the given id exists in the history."""


class OrderStateError(OrderError):
    """Requested transition is not allowed from the order's current status."""
