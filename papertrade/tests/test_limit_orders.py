from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from papertrade.services.execution.order_engine import OrderEngine
from papertrade.shared.errors import OrderNotFound, OrderRejected, OrderStateError
from papertrade.shared.models import OrderIntent, OrderSide, OrderStatus, OrderType, Quote
from papertrade.tests.conftest import StubProvider


def _limit(symbol: str, side: OrderSide, quantity: int) -> OrderIntent:
    return OrderIntent(symbol=symbol, side=side, order_type=OrderType.LIMIT, quantity=quantity)


def _quote(symbol: str, price: str) -> Quote:
    return Quote(symbol=symbol, price=Decimal(price))


@pytest.mark.asyncio
async def test_buy_limit_fills_at_limit_when_quote_drops(engine: OrderEngine) -> None:
    order = await engine.place_order(_limit("RELIANCE", OrderSide.BUY, 10), Decimal("2400"))

    assert engine.match_limit_orders(_quote("RELIANCE.NS", "2401")) == []
    [filled] = engine.match_limit_orders(_quote("RELIANCE.NS", "2390"))

    assert filled.id == order.id
    assert filled.status == OrderStatus.FILLED
    assert filled.price == Decimal("2400")
    assert filled.filled_at is not None
    assert engine.get_balance() == Decimal("1000000") - Decimal("24000")
    assert engine.get_positions()[0].average_price == Decimal("2400")
    # history slot kept, no duplicate entry
    assert [o.id for o in engine.get_orders()] == [order.id]
    assert engine.get_pending_orders() == []


@pytest.mark.asyncio
async def test_sell_limit_fills_when_quote_reaches_limit(engine: OrderEngine) -> None:
    await engine.place_order(OrderIntent(symbol="TCS", side=OrderSide.BUY, quantity=5))
    await engine.place_order(_limit("TCS", OrderSide.SELL, 5), Decimal("3900"))

    assert engine.match_limit_orders(_quote("TCS.NS", "3899.95")) == []
    [filled] = engine.match_limit_orders(_quote("TCS.NS", "3900"))

    assert filled.side == OrderSide.SELL
    assert engine.get_positions() == []
    assert engine.get_balance() == Decimal("1000000") - Decimal("19250.00") + Decimal("19500")


@pytest.mark.asyncio
async def test_matching_ignores_other_symbols(engine: OrderEngine) -> None:
    await engine.place_order(_limit("RELIANCE", OrderSide.BUY, 1), Decimal("2400"))

    assert engine.match_limit_orders(_quote("TCS.NS", "1")) == []
    assert len(engine.get_pending_orders()) == 1


@pytest.mark.asyncio
async def test_cancel_pending_order(engine: OrderEngine) -> None:
    order = await engine.place_order(_limit("RELIANCE", OrderSide.BUY, 1), Decimal("2400"))

    cancelled = engine.cancel_order(order.id, "changed my mind")

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.reason == "changed my mind"
    assert cancelled.cancelled_at is not None
    assert engine.match_limit_orders(_quote("RELIANCE.NS", "2000")) == []
    assert engine.get_balance() == Decimal("1000000")


@pytest.mark.asyncio
async def test_cancel_filled_or_unknown_order_fails(engine: OrderEngine) -> None:
    filled = await engine.place_order(OrderIntent(symbol="TCS", side=OrderSide.BUY, quantity=1))

    with pytest.raises(OrderStateError):
        engine.cancel_order(filled.id)
    with pytest.raises(OrderNotFound):
        engine.cancel_order(uuid4())


@pytest.mark.asyncio
async def test_strict_mode_rejects_unbacked_orders(provider: StubProvider) -> None:
    engine = OrderEngine(provider, initial_balance=Decimal("10000"), strict=True)

    with pytest.raises(OrderRejected, match="Insufficient balance"):
        await engine.place_order(OrderIntent(symbol="RELIANCE", side=OrderSide.BUY, quantity=5))
    with pytest.raises(OrderRejected, match="No open position"):
        await engine.place_order(OrderIntent(symbol="TCS", side=OrderSide.SELL, quantity=1))

    await engine.place_order(OrderIntent(symbol="RELIANCE", side=OrderSide.BUY, quantity=2))
    with pytest.raises(OrderRejected, match="Cannot sell 3"):
        await engine.place_order(OrderIntent(symbol="RELIANCE", side=OrderSide.SELL, quantity=3))

    assert len(engine.get_orders()) == 1
    assert engine.get_balance() == Decimal("10000") - Decimal("4900.00")


@pytest.mark.asyncio
async def test_strict_mode_cancels_limit_that_no_longer_fits(provider: StubProvider) -> None:
    engine = OrderEngine(provider, initial_balance=Decimal("10000"), strict=True)
    first = await engine.place_order(_limit("RELIANCE", OrderSide.BUY, 3), Decimal("2400"))
    second = await engine.place_order(_limit("RELIANCE", OrderSide.BUY, 2), Decimal("2400"))

    changed = engine.match_limit_orders(_quote("RELIANCE.NS", "2350"))

    assert [(o.id, o.status) for o in changed] == [
        (first.id, OrderStatus.FILLED),
        (second.id, OrderStatus.CANCELLED),
    ]
    assert "Insufficient balance" in changed[1].reason
    assert engine.get_balance() == Decimal("10000") - Decimal("7200")


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [Decimal("0"), Decimal("-100")])
async def test_non_positive_limit_is_rejected(provider: StubProvider, engine: OrderEngine, limit: Decimal) -> None:
    await engine.place_order(OrderIntent(symbol="TCS", side=OrderSide.BUY, quantity=1))

    with pytest.raises(OrderRejected, match="Limit price must be positive"):
        await engine.place_order(_limit("TCS", OrderSide.SELL, 1), limit)

    assert engine.get_pending_orders() == []
    assert engine.match_limit_orders(_quote("TCS.NS", "3850")) == []
    assert engine.get_balance() == Decimal("1000000") - Decimal("3850.00")
    assert provider.calls["quote"] == 1
