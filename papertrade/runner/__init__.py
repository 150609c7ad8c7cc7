"""Composition root, quote polling and the trading session."""

from papertrade.runner.poller import QuotePoller
from papertrade.runner.session import TradingSession, build_session

__all__ = ["QuotePoller", "TradingSession", "build_session"]
