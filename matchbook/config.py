"""Market configuration: features, fees, modes and validation."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Union

__all__ = [
    "InvalidConfigError",
    "FeatureSet",
    "FeeModel",
    "FeeTier",
    "FeeSchedule",
    "DepthMode",
    "STPMode",
    "RefMode",
    "HaltType",
    "CircuitBreakerConfig",
    "AuctionConfig",
    "MarketConfig",
    "default_features",
    "precision_of",
]


class InvalidConfigError(ValueError):
    """Raised when a market configuration fails validation."""


class FeatureSet(enum.IntFlag):
    """Bitfield of features enabled for a market."""

    MARKET_ORDERS = 1 << 0
    IOC = 1 << 1
    FOK = 1 << 2
    STOP_ORDERS = 1 << 3
    ICEBERG_ORDERS = 1 << 4
    POST_ONLY = 1 << 5
    REDUCE_ONLY = 1 << 6
    AUCTIONS = 1 << 7


def default_features() -> FeatureSet:
    """Return the default feature set: market orders and IOC."""
    return FeatureSet.MARKET_ORDERS | FeatureSet.IOC


def precision_of(value: Union[Decimal, int, str, float]) -> int:
    """Return the number of digits after the decimal point of ``value``."""
    if isinstance(value, float):
        value = Decimal(str(value))
    elif not isinstance(value, Decimal):
        value = Decimal(value)
    exponent = value.as_tuple().exponent
    if not isinstance(exponent, int):
        raise ValueError(f"value {value!r} has no finite precision")
    return max(0, -exponent)


class FeeModel(enum.IntEnum):
    """How fees are computed for a market."""

    FLAT = 1
    TIERED = 2


@dataclass
class FeeTier:
    """A volume-based fee tier."""

    min_volume: Decimal = Decimal(0)
    maker_fee_rate: Decimal = Decimal("0.0000")
    taker_fee_rate: Decimal = Decimal("0.0000")


@dataclass
class FeeSchedule:
    """Fee structure for a market; rates carry precision 4."""

    maker_fee_rate: Decimal = Decimal(0)
    taker_fee_rate: Decimal = Decimal(0)
    fee_currency: str = ""
    fee_model: Optional[FeeModel] = None
    tiers: list[FeeTier] = field(default_factory=list)


class DepthMode(enum.IntEnum):
    """What happens when an order would exceed the maximum book depth."""

    REJECT_ORDER = 1
    TREAT_AS_IOC = 2


class STPMode(enum.IntEnum):
    """Self-trade prevention mode for a market or a single order."""

    DISABLED = 0
    CANCEL_BOTH = 1
    CANCEL_MAKER = 2
    CANCEL_TAKER = 3
    DECREMENT_CANCEL = 4


class RefMode(enum.IntEnum):
    """Reference price mode used by the auction and circuit breaker."""

    FIRST_TRADE = 1
    OPEN_PRICE = 2
    PREV_CLOSE = 3


_HALT_LABELS = {1: "circuit_breaker", 2: "cascade_limit", 3: "admin"}


class HaltType(enum.IntEnum):
    """Reason class for a market halt; converts to and from its label."""

    CIRCUIT_BREAKER = 1
    CASCADE_LIMIT = 2
    ADMIN = 3

    def __str__(self) -> str:
        return _HALT_LABELS[self.value]

    @classmethod
    def _missing_(cls, value: object) -> Optional["HaltType"]:
        if isinstance(value, str):
            for number, label in _HALT_LABELS.items():
                if label == value:
                    return cls(number)
            raise ValueError(f"unknown HaltType {value!r}")
        return None


@dataclass
class CircuitBreakerConfig:
    """Rolling-window price movement guard settings."""

    window_duration: timedelta = timedelta(0)
    max_move_percent: Decimal = Decimal("0.0000")
    cooldown_period: timedelta = timedelta(0)
    reference_mode: Optional[RefMode] = None


@dataclass
class AuctionConfig:
    """Opening auction settings."""

    pre_open_duration: timedelta = timedelta(0)
    open_time: Optional[datetime] = None


@dataclass
class MarketConfig:
    """Complete configuration for a market. Call validate() before use."""

    market_id: str = ""
    base_asset: str = ""
    quote_asset: str = ""
    description: str = ""

    price_precision: int = 0
    qty_precision: int = 0

    tick_size: Decimal = Decimal(0)
    lot_size: Decimal = Decimal(0)

    min_order_qty: Decimal = Decimal(0)
    max_order_qty: Decimal = Decimal(0)
    max_order_value: Decimal = Decimal(0)

    max_depth: int = 0
    max_depth_mode: Optional[DepthMode] = None

    features: FeatureSet = FeatureSet(0)

    stp_mode: STPMode = STPMode.DISABLED

    fee_schedule: FeeSchedule = field(default_factory=FeeSchedule)

    circuit_breaker: Optional[CircuitBreakerConfig] = None
    auction: Optional[AuctionConfig] = None

    max_cascade_depth: int = 0

    initial_order_seq: int = 0
    initial_event_seq: int = 0

    created_by_user_id: str = ""
    created_at: int = 0
    updated_at: int = 0

    def validate(self) -> None:
        """Check every invariant and fill in defaults; raise InvalidConfigError on failure."""

        def fail(message: str) -> InvalidConfigError:
            return InvalidConfigError(f"invalid market config: {message}")

        if not self.market_id:
            raise fail("MarketID is required")
        tick_prec = precision_of(self.tick_size)
        if tick_prec != self.price_precision:
            raise fail(f"TickSize precision {tick_prec} != PricePrecision {self.price_precision}")
        if self.tick_size <= 0:
            raise fail("TickSize must be > 0")
        lot_prec = precision_of(self.lot_size)
        if lot_prec != self.qty_precision:
            raise fail(f"LotSize precision {lot_prec} != QtyPrecision {self.qty_precision}")
        if self.lot_size <= 0:
            raise fail("LotSize must be > 0")
        if self.min_order_qty != 0 and self.max_order_qty != 0:
            if self.min_order_qty > self.max_order_qty:
                raise fail("MinOrderQty > MaxOrderQty")
        fees = self.fee_schedule
        maker_prec = precision_of(fees.maker_fee_rate)
        if maker_prec != 4:
            raise fail(f"MakerFeeRate precision must be 4, got {maker_prec}")
        taker_prec = precision_of(fees.taker_fee_rate)
        if taker_prec != 4:
            raise fail(f"TakerFeeRate precision must be 4, got {taker_prec}")
        if fees.taker_fee_rate < 0:
            raise fail("TakerFeeRate must be >= 0")
        if fees.fee_model == FeeModel.TIERED and not fees.tiers:
            raise fail("tiered fee model requires at least one tier")
        for previous, current in zip(fees.tiers, fees.tiers[1:]):
            if not current.min_volume > previous.min_volume:
                raise fail("fee tiers must be sorted ascending by MinVolume")
        if FeatureSet.AUCTIONS in self.features and self.auction is None:
            raise fail("auctions feature enabled but Auction config is nil")
        if self.max_cascade_depth == 0:
            self.max_cascade_depth = 10
        if self.initial_order_seq == 0:
            self.initial_order_seq = 1
        if self.initial_event_seq == 0:
            self.initial_event_seq = 1