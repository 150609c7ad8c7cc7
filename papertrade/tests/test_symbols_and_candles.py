from __future__ import annotations

from decimal import Decimal

import pytest

from papertrade.services.data_feed.base import build_candles, normalize_symbol, to_decimal, to_price


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("reliance", "RELIANCE.NS"),
        ("  tcs ", "TCS.NS"),
        ("RELIANCE.BO", "RELIANCE.BO"),
        ("reliance.ns", "RELIANCE.NS"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_normalize_symbol(raw: str, expected: str) -> None:
    assert normalize_symbol(raw) == expected


@pytest.mark.parametrize("raw", ["reliance", "RELIANCE.BO", " infy ", "", "m&m", "abc.def.ghi"])
def test_normalize_symbol_is_idempotent(raw: str) -> None:
    once = normalize_symbol(raw)
    assert normalize_symbol(once) == once


def test_normalize_symbol_custom_suffix() -> None:
    assert normalize_symbol("reliance", ".BO") == "RELIANCE.BO"


def test_price_and_decimal_parsing() -> None:
    assert to_price("2450.50") == Decimal("2450.50")
    assert to_price(None) is None
    assert to_price("") is None
    assert to_price(float("nan")) is None
    assert to_price(0) is None
    assert to_decimal("1.2345%") == Decimal("1.2345")
    assert to_decimal("-12.5") == Decimal("-12.5")
    assert to_decimal("n/a") == Decimal("0")


def test_build_candles_filters_sorts_and_dedupes() -> None:
    records = [
        {"time": 300, "open": "3", "high": "4", "low": "2", "close": "3.5", "volume": "10"},
        {"time": 100, "open": 1, "high": 2, "low": 0.5, "close": 1.5},
        {"time": 200, "open": None, "high": 2, "low": 1, "close": 1.5},
        {"time": 250, "open": 2, "high": float("nan"), "low": 1, "close": 1.5},
        {"time": 100, "open": 1, "high": 2, "low": 0.5, "close": 1.75},
    ]

    candles = build_candles(records)

    assert [c.time for c in candles] == [100, 300]
    assert candles[0].close == Decimal("1.75")
    assert candles[1].volume == 10
    assert candles[0].volume is None


def test_build_candles_all_incomplete_is_empty() -> None:
    assert build_candles([{"time": 1, "open": 1, "high": 1, "low": 1}]) == []
