"""
Order Engine
Prices order intents against the quote provider and ledgers the result.
"""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from papertrade.services.data_feed.base import QuoteProvider
from papertrade.shared.errors import OrderRejected, OrderStateError
from papertrade.shared.models import (
    Order,
    OrderIntent,
    OrderSide,
    OrderStatus,
    OrderType,
    Position,
    Quote,
    utcnow,
)

from .ledger import DEFAULT_INITIAL_BALANCE, Ledger

logger = logging.getLogger(__name__)


class OrderEngine:
    """
    Turns order intents into priced, ledgered state changes.

    Responsibilities:
    - Resolve execution price through the quote provider
    - Fill market orders synchronously
    - Hold limit orders pending until matched or cancelled
    - Expose pull-based reads of balance, positions and history
    """

    def __init__(
        self,
        provider: QuoteProvider,
        *,
        initial_balance: Decimal = DEFAULT_INITIAL_BALANCE,
        strict: bool = False,
    ) -> None:
        """
        Initialize order engine.

        Args:
            provider: Quote provider used for price resolution
            initial_balance: Starting cash balance
            strict: Reject oversells, unheld sells and buys beyond balance
        """
        self._provider = provider
        self._ledger = Ledger(initial_balance)
        self._strict = strict

    @property
    def strict(self) -> bool:
        return self._strict

    async def place_order(self, intent: OrderIntent, limit_price: Optional[Decimal] = None) -> Order:
        """
        Place an order.

        Args:
            intent: Symbol, side, type and quantity
            limit_price: Limit price for limit orders (defaults to the quote price)

        Returns:
            The recorded order (filled for market, pending for limit)

        Raises:
            MarketDataError: Price resolution failed; nothing is recorded
            OrderRejected: Non-positive limit price, or strict mode check
                failed; nothing is recorded
        """
        if limit_price is not None and Decimal(limit_price) <= 0:
            raise OrderRejected(f"Limit price must be positive, got {limit_price}")

        quote = await self._provider.get_latest_price(intent.symbol)

        if intent.order_type == OrderType.MARKET:
            price = quote.price
            status = OrderStatus.FILLED
        else:
            price = Decimal(limit_price) if limit_price is not None else quote.price
            status = OrderStatus.PENDING

        now = utcnow()
        order = Order(
            symbol=quote.symbol,
            order_type=intent.order_type,
            side=intent.side,
            quantity=intent.quantity,
            price=price,
            status=status,
            created_at=now,
            filled_at=now if status == OrderStatus.FILLED else None,
        )

        if self._strict:
            reason = self._ledger.check(order)
            if reason:
                logger.warning(f"Order rejected: {intent.side.value} {intent.quantity} {quote.symbol}: {reason}")
                raise OrderRejected(reason)

        if order.status == OrderStatus.FILLED:
            self._ledger.apply_fill(order)

        self._ledger.append(order)
        logger.info(
            f"Order {order.status.value}: {order.side.value} {order.quantity} {order.symbol} "
            f"@ {order.price} ({order.order_type.value})"
        )
        return order

    def match_limit_orders(self, quote: Quote) -> List[Order]:
        """
        Fill pending limit orders for ``quote.symbol`` whose limit is crossed.

        Buys fill when the quote is at or below the limit, sells when it is
        at or above; fills happen at the limit price, oldest order first.
        In strict mode an order that no longer passes the ledger checks is
        cancelled instead.

        Returns:
            Orders that changed status, in history order
        """
        changed: List[Order] = []
        for order in self._ledger.orders:
            if order.status != OrderStatus.PENDING or order.symbol != quote.symbol:
                continue
            crossed = (
                quote.price <= order.price if order.side == OrderSide.BUY else quote.price >= order.price
            )
            if not crossed:
                continue

            reason = self._ledger.check(order) if self._strict else None
            if reason:
                updated = order.model_copy(
                    update={"status": OrderStatus.CANCELLED, "cancelled_at": utcnow(), "reason": reason}
                )
                self._ledger.replace(updated)
                logger.warning(f"Limit order {order.id} cancelled at match: {reason}")
            else:
                updated = order.model_copy(update={"status": OrderStatus.FILLED, "filled_at": utcnow()})
                self._ledger.apply_fill(updated)
                self._ledger.replace(updated)
                logger.info(f"Limit order {order.id} filled @ {order.price} (quote {quote.price})")
            changed.append(updated)
        return changed

    def cancel_order(self, order_id: UUID, reason: Optional[str] = None) -> Order:
        """
        Cancel a pending order.

        Raises:
            OrderNotFound: Unknown order id
            OrderStateError: Order already filled or cancelled
        """
        order = self._ledger.get_order(order_id)
        if order.status != OrderStatus.PENDING:
            raise OrderStateError(f"Cannot cancel {order.status.value} order {order_id}")

        updated = order.model_copy(
            update={"status": OrderStatus.CANCELLED, "cancelled_at": utcnow(), "reason": reason}
        )
        self._ledger.replace(updated)
        logger.info(f"Order cancelled: {order_id}")
        return updated

    def get_balance(self) -> Decimal:
        return self._ledger.balance

    def get_positions(self) -> List[Position]:
        return list(self._ledger.positions.values())

    def get_orders(self) -> List[Order]:
        return self._ledger.orders

    def get_pending_orders(self) -> List[Order]:
        return [order for order in self._ledger.orders if order.status == OrderStatus.PENDING]
