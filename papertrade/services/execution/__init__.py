"""Order execution and position accounting."""

from papertrade.services.execution.ledger import Ledger
from papertrade.services.execution.order_engine import OrderEngine
from papertrade.services.execution.pnl import refresh_pnl

__all__ = ["Ledger", "OrderEngine", "refresh_pnl"]
