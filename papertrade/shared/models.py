"""
Shared Models for Paper Trading
Pydantic schemas for all core data structures.

This module is the SINGLE SOURCE OF TRUTH for all data models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Enums
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class FeedKind(str, Enum):
    """Upstream strategy used by the quote provider."""
    MOCK = "mock"
    ALPHA_VANTAGE = "alpha_vantage"
    PROXY = "proxy"


class OrderSide(str, Enum):
    """Order side enum."""
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type enum."""
    MARKET = "market"
    LIMIT = "limit"


class OrderStatus(str, Enum):
    """Order status enum."""
    PENDING = "pending"
    FILLED = "filled"
    CANCELLED = "cancelled"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Market Data Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Quote(BaseModel):
    """Point-in-time price snapshot for one symbol."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    symbol: str
    price: Decimal
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")
    name: Optional[str] = None
    open: Optional[Decimal] = None
    high: Optional[Decimal] = None
    low: Optional[Decimal] = None
    previous_close: Optional[Decimal] = None
    volume: Optional[int] = None
    last_updated: Optional[str] = None  # provider-reported trading day/time
    timestamp: datetime = Field(default_factory=utcnow)


class Candle(BaseModel):
    """OHLCV bar; time is Unix seconds."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    time: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: Optional[int] = None


class SymbolSearch(BaseModel):
    """One symbol-search suggestion."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    symbol: str
    name: str
    type: str = "Equity"
    region: Optional[str] = None
    exchange: Optional[str] = None
    match_score: Optional[Decimal] = None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Order Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class OrderIntent(BaseModel):
    """What the user asked for, before pricing."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    symbol: str
    side: OrderSide
    order_type: OrderType = OrderType.MARKET
    quantity: int = Field(gt=0)


class Order(BaseModel):
    """
    Order model - immutable.

    Status transitions (pending -> filled, pending -> cancelled) produce a
    new instance via ``model_copy``.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: UUID = Field(default_factory=uuid4)
    symbol: str
    order_type: OrderType
    side: OrderSide
    quantity: int = Field(gt=0)
    price: Decimal
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    filled_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    reason: Optional[str] = None

    @property
    def notional(self) -> Decimal:
        """Cash value of the order at its price."""
        return self.price * self.quantity

    @property
    def is_terminal(self) -> bool:
        """Check if order is in a terminal state."""
        return self.status in {OrderStatus.FILLED, OrderStatus.CANCELLED}


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Position Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class Position(BaseModel):
    """Aggregated long holding of one symbol."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    symbol: str
    quantity: int
    average_price: Decimal
    current_price: Decimal
    pnl: Decimal = Decimal("0")
    pnl_percent: Decimal = Decimal("0")

    @property
    def cost_basis(self) -> Decimal:
        """Total cost of the holding at the average price."""
        return self.average_price * self.quantity

    @property
    def market_value(self) -> Decimal:
        """Value of the holding at the latest observed price."""
        return self.current_price * self.quantity


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Account Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class PortfolioSnapshot(BaseModel):
    """Read-only account summary for display."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    balance: Decimal
    positions: tuple[Position, ...] = ()
    orders: tuple[Order, ...] = ()
    invested: Decimal = Decimal("0")
    market_value: Decimal = Decimal("0")
    unrealized_pnl: Decimal = Decimal("0")
    equity: Decimal = Decimal("0")
    timestamp: datetime = Field(default_factory=utcnow)
