from __future__ import annotations

import pytest
from aiohttp.test_utils import TestClient, TestServer

from papertrade.server.app import create_app
from papertrade.shared.config import ServerSettings
from papertrade.shared.errors import RateLimited
from papertrade.tests.conftest import FakeClock, FakeUpstream


def _client(upstream: FakeUpstream, clock: FakeClock | None = None) -> TestClient:
    app = create_app(upstream, ServerSettings(), clock=clock or FakeClock())
    return TestClient(TestServer(app))


@pytest.mark.asyncio
async def test_stock_response_shape() -> None:
    upstream = FakeUpstream()
    async with _client(upstream) as client:
        resp = await client.get("/api/stock/reliance", params={"interval": "5m", "range": "1d"})
        body = await resp.json()

    assert resp.status == 200
    assert body["symbol"] == "RELIANCE.NS"
    assert body["name"] == "Reliance Industries Limited"
    assert body["price"] == 2450.0
    assert body["changePercent"] == 0.51
    assert body["close"] == 2437.5
    assert body["lastUpdated"]
    # incomplete bar dropped, rest ascending
    assert [bar["time"] for bar in body["chartData"]] == [1792142100, 1792142400]
    assert body["chartData"][0] == {
        "time": 1792142100, "open": 2440.0, "high": 2446.0, "low": 2438.0, "close": 2445.0, "volume": 12,
    }


@pytest.mark.asyncio
async def test_invalid_interval_is_400() -> None:
    upstream = FakeUpstream()
    async with _client(upstream) as client:
        resp = await client.get("/api/stock/RELIANCE.NS", params={"interval": "7m"})
        body = await resp.json()

    assert resp.status == 400
    assert body == {"error": True, "message": "Invalid interval: 7m"}
    assert upstream.calls["quote"] == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, status, message",
    [
        (None, 404, "No data found for symbol: NOPE.NS."),
        (RateLimited("Too Many Requests"), 429, "Too Many Requests"),
        (RuntimeError("boom"), 500, "Failed to fetch data: boom"),
    ],
)
async def test_quote_failures_map_to_status(error: Exception | None, status: int, message: str) -> None:
    upstream = FakeUpstream()
    upstream.quote_error = error
    async with _client(upstream) as client:
        resp = await client.get("/api/stock/nope")
        body = await resp.json()

    assert resp.status == status
    assert body == {"error": True, "message": message}


@pytest.mark.asyncio
async def test_missing_price_is_404() -> None:
    upstream = FakeUpstream()
    upstream.quotes["TCS.NS"] = {"name": "TCS", "price": None}
    async with _client(upstream) as client:
        resp = await client.get("/api/stock/TCS")

    assert resp.status == 404


@pytest.mark.asyncio
async def test_chart_failure_returns_quote_without_bars() -> None:
    upstream = FakeUpstream()
    upstream.chart_error = RuntimeError("history unavailable")
    async with _client(upstream) as client:
        resp = await client.get("/api/stock/RELIANCE.NS")
        body = await resp.json()

    assert resp.status == 200
    assert body["price"] == 2450.0
    assert body["chartData"] == []


@pytest.mark.asyncio
async def test_stock_responses_cached_per_interval_and_range() -> None:
    upstream = FakeUpstream()
    clock = FakeClock()
    async with _client(upstream, clock) as client:
        await client.get("/api/stock/RELIANCE.NS")
        await client.get("/api/stock/reliance")
        assert upstream.calls["quote"] == 1

        await client.get("/api/stock/RELIANCE.NS", params={"range": "5d"})
        assert upstream.calls["quote"] == 2

        clock.advance(300)
        await client.get("/api/stock/RELIANCE.NS")
        assert upstream.calls["quote"] == 3


@pytest.mark.asyncio
async def test_search_keeps_indian_listings_only() -> None:
    upstream = FakeUpstream()
    async with _client(upstream) as client:
        resp = await client.get("/api/search/reliance")
        body = await resp.json()
        await client.get("/api/search/RELIANCE")

    assert body == [
        {"symbol": "RELIANCE.NS", "name": "RELIANCE INDS", "exchange": "NSI", "type": "EQUITY"},
        {"symbol": "RELIANCE.BO", "name": "Reliance Industries Limited", "exchange": "NSE", "type": "Equity"},
    ]
    assert upstream.calls["search"] == 1


@pytest.mark.asyncio
async def test_search_short_query_and_failure_are_empty() -> None:
    upstream = FakeUpstream()
    async with _client(upstream) as client:
        short = await (await client.get("/api/search/r")).json()
        upstream.search_error = RuntimeError("down")
        failed = await (await client.get("/api/search/tata")).json()

    assert short == []
    assert failed == []
    assert upstream.calls["search"] == 1


@pytest.mark.asyncio
async def test_health() -> None:
    async with _client(FakeUpstream()) as client:
        resp = await client.get("/api/health")
        body = await resp.json()

    assert resp.status == 200
    assert body["status"] == "ok"
    assert "timestamp" in body


@pytest.mark.asyncio
async def test_cors_header_only_for_allowed_origins() -> None:
    async with _client(FakeUpstream()) as client:
        allowed = await client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        other = await client.get("/api/health", headers={"Origin": "http://evil.example"})

    assert allowed.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert "Access-Control-Allow-Origin" not in other.headers
