"""Call auction: orders gather in a book and execute together at one clearing price."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Optional

from matchbook.orders import TIF, Fill, Side

__all__ = ["AuctionOrder", "ClearingResult", "SweepResult", "AuctionBook"]


@dataclass(frozen=True)
class AuctionOrder:
    """A limit order submitted while the market is in its auction phase."""

    order_id: str
    user_id: str
    side: Side
    price: Decimal
    qty: Decimal
    tif: TIF = TIF.GTC
    seq_num: int = 0


@dataclass(frozen=True)
class ClearingResult:
    """Equilibrium price and the quantity that can execute at it."""

    price: Decimal
    matchable_qty: Decimal


@dataclass
class SweepResult:
    """Outcome of executing the auction at a clearing price.

    ``unmatched`` holds GTC orders with quantity left, to be carried into the
    continuous book; ``canceled`` holds the other orders with quantity left.
    """

    fills: list[Fill] = field(default_factory=list)
    unmatched: list[AuctionOrder] = field(default_factory=list)
    canceled: list[AuctionOrder] = field(default_factory=list)

    def _carry(self, order: AuctionOrder) -> None:
        if order.tif == TIF.GTC:
            self.unmatched.append(order)
        else:
            self.canceled.append(order)


def _bid_key(order: AuctionOrder) -> tuple[Decimal, int]:
    return (-order.price, order.seq_num)


def _ask_key(order: AuctionOrder) -> tuple[Decimal, int]:
    return (order.price, order.seq_num)


class AuctionBook:
    """Orders accumulated during the pre-open and auction phases.

    Bids are kept best (highest) price first, asks lowest price first; equal
    prices are ordered by sequence number.
    """

    def __init__(self) -> None:
        self._bids: list[AuctionOrder] = []
        self._asks: list[AuctionOrder] = []

    def add_order(self, order: AuctionOrder) -> None:
        """Add an order to its side, keeping the side in priority order."""
        if order.side == Side.BID:
            self._bids.append(order)
            self._bids.sort(key=_bid_key)
        else:
            self._asks.append(order)
            self._asks.sort(key=_ask_key)

    def bid_count(self) -> int:
        """Number of bid orders."""
        return len(self._bids)

    def ask_count(self) -> int:
        """Number of ask orders."""
        return len(self._asks)

    def __contains__(self, order_id: object) -> bool:
        return any(o.order_id == order_id for o in self._bids) or any(
            o.order_id == order_id for o in self._asks
        )

    def compute_clearing_price(self, ref_price: Optional[Decimal] = None) -> Optional[ClearingResult]:
        """Find the price that maximises executable volume.

        Ties are broken by smaller imbalance, then by distance to ``ref_price``
        (preferring the reference price itself when equidistant). A missing or
        zero ``ref_price`` skips that tiebreaker. Returns None when nothing crosses.
        """
        if not self._bids or not self._asks:
            return None

        candidates = sorted({o.price for o in self._bids} | {o.price for o in self._asks})
        has_ref = ref_price is not None and ref_price != 0

        best: Optional[ClearingResult] = None
        best_imbalance = Decimal(0)

        for candidate in candidates:
            cum_bid = sum((o.qty for o in self._bids if o.price >= candidate), Decimal(0))
            cum_ask = sum((o.qty for o in self._asks if o.price <= candidate), Decimal(0))
            exec_qty = min(cum_bid, cum_ask)
            if exec_qty == 0:
                continue
            imbalance = abs(cum_bid - cum_ask)

            better_ref = False
            if (
                has_ref
                and best is not None
                and exec_qty == best.matchable_qty
                and imbalance == best_imbalance
            ):
                dist_candidate = abs(candidate - ref_price)
                dist_best = abs(best.price - ref_price)
                if dist_candidate < dist_best:
                    better_ref = True
                elif dist_candidate == dist_best:
                    better_ref = candidate == ref_price

            if (
                best is None
                or exec_qty > best.matchable_qty
                or (exec_qty == best.matchable_qty and imbalance < best_imbalance)
                or better_ref
            ):
                best = ClearingResult(candidate, exec_qty)
                best_imbalance = imbalance

        return best

    def sweep(self, clearing_price: Decimal) -> SweepResult:
        """Execute every eligible order at clearing_price and sort out the leftovers."""
        result = SweepResult()
        elig_bids = [o for o in self._bids if o.price >= clearing_price]
        elig_asks = [o for o in self._asks if o.price <= clearing_price]
        bid_remain = [o.qty for o in elig_bids]
        ask_remain = [o.qty for o in elig_asks]

        bi = ai = 0
        while bi < len(elig_bids) and ai < len(elig_asks):
            if bid_remain[bi] == 0:
                bi += 1
                continue
            if ask_remain[ai] == 0:
                ai += 1
                continue
            bid, ask = elig_bids[bi], elig_asks[ai]
            fill_qty = min(bid_remain[bi], ask_remain[ai])
            bid_remain[bi] -= fill_qty
            ask_remain[ai] -= fill_qty
            result.fills.append(
                Fill(
                    maker_order_id=ask.order_id,
                    taker_order_id=bid.order_id,
                    maker_user_id=ask.user_id,
                    taker_user_id=bid.user_id,
                    maker_side=Side.ASK,
                    price=clearing_price,
                    qty=fill_qty,
                    maker_remain_qty=ask_remain[ai],
                    taker_remain_qty=bid_remain[bi],
                    maker_seq_num=ask.seq_num,
                    taker_seq_num=bid.seq_num,
                    timestamp=0,
                )
            )

        for orders, remains in ((elig_bids, bid_remain), (elig_asks, ask_remain)):
            for order, remain in zip(orders, remains):
                if remain != 0:
                    result._carry(replace(order, qty=remain))

        for order in self._bids:
            if order.price < clearing_price:
                result._carry(order)
        for order in self._asks:
            if order.price > clearing_price:
                result._carry(order)

        return result