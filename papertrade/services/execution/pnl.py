"""Pure P&L recompute for positions."""

from __future__ import annotations

from decimal import Decimal

from papertrade.shared.models import Position, Quote

ZERO = Decimal("0")


def refresh_pnl(position: Position, quote: Quote) -> Position:
    """
    Return a copy of ``position`` marked to ``quote``.

    pnl = (current - average) * quantity
    pnl_percent = pnl / (average * quantity) * 100

    Positions for another symbol are returned unchanged.
    """
    if position.symbol != quote.symbol:
        return position

    pnl = (quote.price - position.average_price) * position.quantity
    cost = position.cost_basis
    pnl_percent = pnl / cost * 100 if cost else ZERO
    return position.model_copy(
        update={"current_price": quote.price, "pnl": pnl, "pnl_percent": pnl_percent}
    )
