"""
State Query
Read-only portfolio summary built from engine reads and observed quotes.

No business logic here - pure aggregation.
"""

from decimal import Decimal
from typing import Iterable, Mapping

from papertrade.services.execution.pnl import refresh_pnl
from papertrade.shared.models import Order, PortfolioSnapshot, Position, Quote


def build_portfolio_snapshot(
    balance: Decimal,
    positions: Iterable[Position],
    orders: Iterable[Order],
    quotes: Mapping[str, Quote],
) -> PortfolioSnapshot:
    """
    Summarize account state.

    Args:
        balance: Cash balance
        positions: Open positions as held by the ledger
        orders: Order history
        quotes: Latest observed quote per symbol

    Returns:
        Snapshot with positions marked to the latest quotes
    """
    marked = tuple(
        refresh_pnl(position, quotes[position.symbol]) if position.symbol in quotes else position
        for position in sorted(positions, key=lambda p: p.symbol)
    )
    invested = sum((p.cost_basis for p in marked), Decimal("0"))
    market_value = sum((p.market_value for p in marked), Decimal("0"))
    return PortfolioSnapshot(
        balance=balance,
        positions=marked,
        orders=tuple(orders),
        invested=invested,
        market_value=market_value,
        unrealized_pnl=market_value - invested,
        equity=balance + market_value,
    )
