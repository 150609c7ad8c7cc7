"""
Paper Ledger
Cash balance, open positions and the order history.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from papertrade.shared.errors import OrderNotFound
from papertrade.shared.models import Order, OrderSide, OrderStatus, Position

logger = logging.getLogger(__name__)

DEFAULT_INITIAL_BALANCE = Decimal("1000000")


class Ledger:
    """
    In-memory account state.

    Invariants:
    - every symbol in the position mapping has quantity > 0
    - only filled orders move cash or positions
    - history keeps insertion order; status transitions replace in place
    """

    def __init__(self, initial_balance: Decimal = DEFAULT_INITIAL_BALANCE) -> None:
        self._initial_balance = Decimal(initial_balance)
        self._balance = self._initial_balance
        self._positions: Dict[str, Position] = {}  # symbol -> position
        self._orders: List[Order] = []
        self._order_index: Dict[UUID, int] = {}  # order id -> history slot

    @property
    def initial_balance(self) -> Decimal:
        return self._initial_balance

    @property
    def balance(self) -> Decimal:
        return self._balance

    @property
    def positions(self) -> Dict[str, Position]:
        """Get current positions."""
        return self._positions.copy()

    @property
    def orders(self) -> List[Order]:
        """Get order history, oldest first."""
        return list(self._orders)

    def get_position(self, symbol: str) -> Optional[Position]:
        return self._positions.get(symbol)

    def get_order(self, order_id: UUID) -> Order:
        try:
            return self._orders[self._order_index[order_id]]
        except KeyError:
            raise OrderNotFound(f"Order not found: {order_id}") from None

    def append(self, order: Order) -> None:
        self._order_index[order.id] = len(self._orders)
        self._orders.append(order)

    def replace(self, order: Order) -> None:
        """Swap in a new version of an existing order, keeping its slot."""
        slot = self._order_index.get(order.id)
        if slot is None:
            raise OrderNotFound(f"Order not found: {order.id}")
        self._orders[slot] = order

    def check(self, order: Order) -> Optional[str]:
        """
        Return why ``order`` would break a balance/holdings rule, or None.

        Only consulted in strict mode.
        """
        if order.side == OrderSide.BUY:
            if order.notional > self._balance:
                return f"Insufficient balance: need {order.notional}, have {self._balance}"
            return None

        position = self._positions.get(order.symbol)
        if position is None:
            return f"No open position in {order.symbol}"
        if order.quantity > position.quantity:
            return f"Cannot sell {order.quantity} {order.symbol}, holding {position.quantity}"
        return None

    def apply_fill(self, order: Order) -> None:
        """
        Apply a filled order to cash and positions.

        Args:
            order: Order with status FILLED
        """
        if order.status != OrderStatus.FILLED:
            raise ValueError(f"Only filled orders touch the ledger, got {order.status.value}")

        cost = order.notional
        symbol = order.symbol
        existing = self._positions.get(symbol)

        if order.side == OrderSide.BUY:
            self._balance -= cost
            if existing is None:
                self._positions[symbol] = Position(
                    symbol=symbol,
                    quantity=order.quantity,
                    average_price=order.price,
                    current_price=order.price,
                )
            else:
                total_qty = existing.quantity + order.quantity
                total_cost = existing.cost_basis + cost
                self._positions[symbol] = existing.model_copy(
                    update={"quantity": total_qty, "average_price": total_cost / total_qty}
                )
        else:
            self._balance += cost
            if existing is not None:
                remaining = existing.quantity - order.quantity
                if remaining <= 0:
                    del self._positions[symbol]
                else:
                    # average price does not change on a sell
                    self._positions[symbol] = existing.model_copy(update={"quantity": remaining})

        logger.info(
            f"Ledger {order.side.value} {order.quantity} {symbol} @ {order.price}; "
            f"balance={self._balance} qty={self._positions[symbol].quantity if symbol in self._positions else 0}"
        )
