# matchbook

A single-market central limit order book (CLOB) library in pure Python. It offers:

- continuous price-time priority matching of limit and market orders
- time-in-force handling: good-till-cancel, immediate-or-cancel and fill-or-kill (a fill-or-kill order is checked against the available liquidity before the book is changed)
- iceberg orders that refill their shown portion from a hidden reserve, losing time priority each time
- self-trade prevention modes: cancel both, cancel maker, cancel taker, decrement-and-cancel
- a check for whether a new price level would exceed a maximum book depth, and removal of expired good-till-date orders
- a call (batch) auction that finds the price clearing the most volume and executes every crossing order at that price
- a circuit breaker that signals a halt when the price moves too far within a rolling time window

Prices and quantities are `decimal.Decimal` values. Their precision, meaning the number of digits after the decimal point, is checked against the market configuration by `MarketConfig.validate()`.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `matchbook.config` | `MarketConfig`, `FeatureSet`, `FeeSchedule`, `FeeTier`, `FeeModel`, `STPMode`, `DepthMode`, `RefMode`, `HaltType`, `CircuitBreakerConfig`, `AuctionConfig`, `InvalidConfigError`, `default_features()`, `precision_of()` |
| `matchbook.circuit` | `RollingWindow`, `PriceSample`, `CircuitBreaker` |
| `matchbook.orders` | `Side`, `OrderType`, `TIF`, `OrderFlags`, `CancelReason`, `OrderNode`, `Fill` and the command classes (`PlaceLimitOrder`, `PlaceMarketOrder`, `PlaceStopOrder`, `CancelOrder`, `AdminCreateMarket`, `AdminHaltMarket`, `AdminResumeMarket`) |
| `matchbook.levels` | `PriceLevel`, `PriceLevelTree`, `DepthLevel`, `OrderIndex` |
| `matchbook.book` | `OrderBook`, `Disposition`, `BookError`, `OrderNotFoundError`, `OwnershipMismatchError`, `DuplicateOrderIDError` |
| `matchbook.auction` | `AuctionBook`, `AuctionOrder`, `ClearingResult`, `SweepResult` |

## Configuring a market

```python
from decimal import Decimal
from matchbook.config import MarketConfig, FeeSchedule, STPMode, default_features

cfg = MarketConfig(
    market_id="BTC-USD",
    price_precision=2,
    qty_precision=0,
    tick_size=Decimal("0.01"),
    lot_size=Decimal("1"),
    features=default_features(),
    stp_mode=STPMode.CANCEL_MAKER,
    fee_schedule=FeeSchedule(
        maker_fee_rate=Decimal("-0.0010"),
        taker_fee_rate=Decimal("0.0030"),
        fee_currency="USD",
    ),
)
cfg.validate()  # raises InvalidConfigError when the configuration is inconsistent
```

`validate()` also fills in defaults: a cascade depth of 10 and initial order and event sequence numbers of 1.

## Matching orders

```python
from decimal import Decimal
from matchbook.book import OrderBook, Disposition
from matchbook.orders import OrderNode, Side, TIF, OrderType

book = OrderBook(cfg)

ask = OrderNode(order_id="a1", user_id="seller", side=Side.ASK, order_type=OrderType.LIMIT,
                tif=TIF.GTC, price=Decimal("100.00"),
                remain_qty=Decimal("10"), display_qty=Decimal("10"))
book.place_limit(ask)

bid = OrderNode(order_id="b1", user_id="buyer", side=Side.BID, order_type=OrderType.LIMIT,
                tif=TIF.GTC, price=Decimal("100.00"),
                remain_qty=Decimal("4"), display_qty=Decimal("4"))
fills, disposition = book.place_limit(bid)

assert disposition is Disposition.FULLY_FILLED
assert fills[0].qty == Decimal("4")
print(book.bbo())          # (best bid, best ask); None for an empty side
print(book.snapshot(5))    # top five DepthLevel entries on each side
node = book.cancel("a1", "seller")   # returns the removed OrderNode
```

`place_market()` matches a market order and never rests it; `place_resting()` adds an order without matching. A cancel raises `OrderNotFoundError` for an unknown order and `OwnershipMismatchError` when the order belongs to another user. `expire_gtd(now)` removes and returns orders whose `expire_at` is at or before `now`.

An `OrderBook` may be given an iterator of sequence numbers (`OrderBook(cfg, order_seq=...)`); it draws from it when an iceberg order is refilled. By default it counts up from the configuration's initial order sequence.

## Call auctions

```python
from decimal import Decimal
from matchbook.auction import AuctionBook, AuctionOrder
from matchbook.orders import Side, TIF

auction = AuctionBook()
auction.add_order(AuctionOrder("b1", "buyer", Side.BID, Decimal("105.00"), Decimal("10"), TIF.GTC, 1))
auction.add_order(AuctionOrder("a1", "seller", Side.ASK, Decimal("100.00"), Decimal("10"), TIF.GTC, 2))

result = auction.compute_clearing_price(Decimal("0"))
if result is not None:
    swept = auction.sweep(result.price)
    # swept.fills, swept.unmatched (GTC remainders), swept.canceled (IOC/FOK remainders)
```

The clearing price is the price that executes the most quantity. Ties go to the price with the smallest imbalance between the two sides, then to the price closest to the reference price passed in (a zero or missing reference price skips this step). `compute_clearing_price` returns `None` when no orders cross.

## Circuit breaker

```python
from datetime import timedelta
from decimal import Decimal
from matchbook.circuit import CircuitBreaker
from matchbook.config import CircuitBreakerConfig

breaker = CircuitBreaker(CircuitBreakerConfig(
    window_duration=timedelta(seconds=60),
    max_move_percent=Decimal("0.1000"),
    cooldown_period=timedelta(seconds=30),
))
breaker.check(Decimal("100.00"), 0)
reason = breaker.check(Decimal("115.00"), 1_000_000_000)  # timestamps in nanoseconds
if reason is not None:
    breaker.set_last_halt(1_000_000_000)
```

`check()` returns a reason string when the move from the oldest price in the window exceeds `max_move_percent`, and `None` otherwise, including during the cooldown after a recorded halt.

## What the package does not do

matchbook is a library of building blocks. It has no engine that consumes the command classes in `matchbook.orders`: nothing queues commands, emits events, assigns timestamps to fills, runs market state transitions or routes orders between several markets. It keeps no book of stop orders, computes no fees from a `FeeSchedule`, stores nothing on disk and offers no command-line program or network server.