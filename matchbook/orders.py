"""Order vocabulary, resting order nodes, fills and engine commands."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from matchbook.config import MarketConfig, STPMode

if TYPE_CHECKING:
    from matchbook.levels import PriceLevel

__all__ = [
    "Side",
    "OrderType",
    "TIF",
    "OrderFlags",
    "CancelReason",
    "Fill",
    "OrderNode",
    "Command",
    "PlaceLimitOrder",
    "PlaceMarketOrder",
    "PlaceStopOrder",
    "CancelOrder",
    "AdminCreateMarket",
    "AdminHaltMarket",
    "AdminResumeMarket",
]


class Side(enum.IntEnum):
    """Side of the book an order belongs to."""

    BID = 1
    ASK = 2

    def opposite(self) -> "Side":
        """Return the other side."""
        return Side.ASK if self is Side.BID else Side.BID


class OrderType(enum.IntEnum):
    """Kind of order."""

    LIMIT = 1
    MARKET = 2
    STOP = 3
    STOP_LIMIT = 4
    ICEBERG = 5


class TIF(enum.IntEnum):
    """Time in force."""

    GTC = 1
    IOC = 2
    FOK = 3
    GTD = 4

    def can_rest(self) -> bool:
        """Whether an order with this time in force may rest in the book."""
        return self in (TIF.GTC, TIF.GTD)


class OrderFlags(enum.IntFlag):
    """Optional behaviour flags on an order."""

    POST_ONLY = 1 << 0
    REDUCE_ONLY = 1 << 1
    ICEBERG = 1 << 2


class CancelReason(enum.IntEnum):
    """Why an order left the book without filling."""

    USER_REQUESTED = 1
    IOC = 2
    FOK = 3
    STP = 4
    EXPIRED = 5


@dataclass
class Fill:
    """One match between a resting maker and an incoming taker."""

    maker_order_id: str
    taker_order_id: str
    maker_user_id: str
    taker_user_id: str
    maker_side: Side
    price: Decimal
    qty: Decimal
    maker_remain_qty: Decimal
    taker_remain_qty: Decimal
    maker_seq_num: int
    taker_seq_num: int
    timestamp: int = 0
    maker_level_exists: bool = False
    maker_level_total_qty: Decimal = Decimal(0)
    maker_level_display_qty: Decimal = Decimal(0)
    maker_level_order_count: int = 0


@dataclass(eq=False)
class OrderNode:
    """A single order, linked into the FIFO queue of its price level.

    Time priority is decided by ``seq_num`` alone; ``timestamp`` is for reporting.
    """

    order_id: str = ""
    user_id: str = ""
    market_id: str = ""
    side: Side = Side.BID
    order_type: OrderType = OrderType.LIMIT
    tif: TIF = TIF.GTC
    flags: OrderFlags = OrderFlags(0)
    stp_mode: STPMode = STPMode.DISABLED

    price: Decimal = Decimal(0)
    stop_price: Decimal = Decimal(0)

    orig_qty: Decimal = Decimal(0)
    remain_qty: Decimal = Decimal(0)
    filled_qty: Decimal = Decimal(0)
    display_qty: Decimal = Decimal(0)
    hidden_qty: Decimal = Decimal(0)
    orig_display_qty: Decimal = Decimal(0)

    seq_num: int = 0
    timestamp: int = 0
    expire_at: int = 0

    prev_node: Optional["OrderNode"] = field(default=None, init=False, repr=False)
    next_node: Optional["OrderNode"] = field(default=None, init=False, repr=False)
    level: Optional["PriceLevel"] = field(default=None, init=False, repr=False)


class Command:
    """Base of every instruction submitted to an engine.

    Each command exposes ``market_id``, ``order_id`` and ``user_id``.
    """

    market_id: str
    order_id: str
    user_id: str


@dataclass(frozen=True)
class PlaceLimitOrder(Command):
    """Request to place a limit order; a non-zero display_qty makes it an iceberg."""

    market_id: str
    order_id: str
    user_id: str
    side: Side
    price: Decimal
    qty: Decimal
    display_qty: Decimal = Decimal(0)
    tif: TIF = TIF.GTC
    flags: OrderFlags = OrderFlags(0)
    expire_at: int = 0
    stp_mode: STPMode = STPMode.DISABLED


@dataclass(frozen=True)
class PlaceMarketOrder(Command):
    """Request to place a market order."""

    market_id: str
    order_id: str
    user_id: str
    side: Side
    qty: Decimal
    tif: TIF = TIF.IOC
    flags: OrderFlags = OrderFlags(0)
    stp_mode: STPMode = STPMode.DISABLED


@dataclass(frozen=True)
class PlaceStopOrder(Command):
    """Request to place a stop or stop-limit order; limit_price is zero for stop-market."""

    market_id: str
    order_id: str
    user_id: str
    side: Side
    trigger_price: Decimal
    qty: Decimal
    limit_price: Decimal = Decimal(0)
    convert_to: OrderType = OrderType.MARKET
    tif: TIF = TIF.GTC
    flags: OrderFlags = OrderFlags(0)
    stp_mode: STPMode = STPMode.DISABLED


@dataclass(frozen=True)
class CancelOrder(Command):
    """Request to cancel an existing order."""

    market_id: str
    order_id: str
    user_id: str


class _AdminCommand(Command):
    """Administrative command: no order, issued by the admin user."""

    @property
    def order_id(self) -> str:  # type: ignore[override]
        return ""

    @property
    def user_id(self) -> str:  # type: ignore[override]
        return "admin"


@dataclass(frozen=True)
class AdminCreateMarket(_AdminCommand):
    """Administrative request to create a new market."""

    market_id: str
    config: MarketConfig = field(default_factory=MarketConfig)


@dataclass(frozen=True)
class AdminHaltMarket(_AdminCommand):
    """Administrative request to halt a market."""

    market_id: str
    reason: str = ""


@dataclass(frozen=True)
class AdminResumeMarket(_AdminCommand):
    """Administrative request to resume a market."""

    market_id: str