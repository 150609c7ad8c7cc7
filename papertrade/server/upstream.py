"""
Yahoo Finance upstream for the proxy server.
Wraps the synchronous yfinance client in worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Protocol

import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from papertrade.shared.errors import RateLimited, SymbolNotFound

logger = logging.getLogger(__name__)


class StockUpstream(Protocol):
    async def quote(self, symbol: str) -> Dict[str, Any]:
        """Return quote fields (price, change, changePercent, open, high, low, previousClose, volume, name)."""

    async def chart(self, symbol: str, interval: str, period: str) -> List[Dict[str, Any]]:
        """Return raw bar records (time, open, high, low, close, volume)."""

    async def search(self, query: str, limit: int) -> List[Dict[str, Any]]:
        """Return raw search hits (symbol, shortname, longname, exchange, quoteType)."""


class YahooUpstream(StockUpstream):
    """yfinance-backed upstream."""

    async def quote(self, symbol: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self._quote, symbol)

    async def chart(self, symbol: str, interval: str, period: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._chart, symbol, interval, period)

    async def search(self, query: str, limit: int) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._search, query, limit)

    @staticmethod
    def _quote(symbol: str) -> Dict[str, Any]:
        try:
            info = yf.Ticker(symbol).info or {}
        except YFRateLimitError as e:
            raise RateLimited(str(e), symbol) from e

        price = info.get("regularMarketPrice")
        if not price:
            logger.warning(f"No regularMarketPrice found for {symbol}")
            raise SymbolNotFound(f"No data found for symbol: {symbol}.", symbol)

        return {
            "name": info.get("shortName") or info.get("longName") or symbol,
            "price": price,
            "change": info.get("regularMarketChange") or 0,
            "changePercent": info.get("regularMarketChangePercent") or 0,
            "open": info.get("regularMarketOpen") or price,
            "high": info.get("regularMarketDayHigh") or price,
            "low": info.get("regularMarketDayLow") or price,
            "previousClose": info.get("regularMarketPreviousClose") or price,
            "volume": info.get("regularMarketVolume") or 0,
        }

    @staticmethod
    def _chart(symbol: str, interval: str, period: str) -> List[Dict[str, Any]]:
        try:
            frame = yf.Ticker(symbol).history(period=period, interval=interval, auto_adjust=False)
        except YFRateLimitError as e:
            raise RateLimited(str(e), symbol) from e

        records = []
        for stamp, row in frame.iterrows():
            records.append({
                "time": int(stamp.timestamp()),
                "open": row.get("Open"),
                "high": row.get("High"),
                "low": row.get("Low"),
                "close": row.get("Close"),
                "volume": row.get("Volume"),
            })
        return records

    @staticmethod
    def _search(query: str, limit: int) -> List[Dict[str, Any]]:
        try:
            return list(yf.Search(query, max_results=limit).quotes)
        except YFRateLimitError as e:
            raise RateLimited(str(e)) from e
