"""Continuous limit order book with price-time priority matching."""

from __future__ import annotations

import enum
import itertools
from decimal import Decimal
from typing import Iterator, Optional

from matchbook.config import MarketConfig, STPMode
from matchbook.levels import DepthLevel, OrderIndex, PriceLevel, PriceLevelTree
from matchbook.orders import TIF, Fill, OrderNode, OrderType, Side

__all__ = [
    "BookError",
    "OrderNotFoundError",
    "OwnershipMismatchError",
    "DuplicateOrderIDError",
    "Disposition",
    "OrderBook",
]


class BookError(Exception):
    """Base class for order book errors."""


class OrderNotFoundError(BookError, LookupError):
    """The order is not resting in the book."""


class OwnershipMismatchError(BookError):
    """A cancel was requested by a user who does not own the order."""


class DuplicateOrderIDError(BookError):
    """An order with the same id already exists."""


class Disposition(enum.IntEnum):
    """Outcome of submitting an order to the book."""

    FULLY_FILLED = 1
    PARTIAL_FILL_RESTED = 2
    PARTIAL_FILL_CANCELED = 3
    RESTED = 4
    CANCELED = 5
    REJECTED = 6


def _zero_like(value: Decimal) -> Decimal:
    """Zero carrying the same number of decimal places as value."""
    return value - value


class OrderBook:
    """Bid and ask price levels plus an index of resting orders.

    Not thread-safe: a single owner must drive every call.
    """

    def __init__(self, config: MarketConfig, order_seq: Optional[Iterator[int]] = None) -> None:
        self.config = config
        self.bids = PriceLevelTree(Side.BID)
        self.asks = PriceLevelTree(Side.ASK)
        self.index = OrderIndex()
        if order_seq is None:
            order_seq = itertools.count(config.initial_order_seq or 1)
        self._order_seq = order_seq

    # --- public operations -------------------------------------------------

    def place_limit(self, node: OrderNode) -> tuple[list[Fill], Disposition]:
        """Match a limit (or iceberg) order and rest any remainder it may keep."""
        return self._match(node)

    def place_resting(self, node: OrderNode) -> None:
        """Add node to the book without matching, as while the market is halted."""
        self._rest_node(node)

    def place_market(self, node: OrderNode) -> tuple[list[Fill], Disposition]:
        """Match a market order; it never rests."""
        return self._match(node)

    def cancel(self, order_id: str, user_id: str) -> OrderNode:
        """Remove a resting order owned by user_id and return its node."""
        node = self.index.get(order_id)
        if node is None:
            raise OrderNotFoundError(f"order not found: {order_id}")
        if node.user_id != user_id:
            raise OwnershipMismatchError(
                f"cancel rejected, wrong user: order {order_id} belongs to {node.user_id}, not {user_id}"
            )
        self._remove_resting(node)
        return node

    def has_order(self, order_id: str) -> bool:
        """True if order_id is resting in the book."""
        return order_id in self.index

    def would_cross(self, price: Decimal, side: Side) -> bool:
        """True if a limit order at price on side would fill immediately."""
        if side == Side.BID:
            best = self.asks.best()
            return best is not None and price >= best.price
        best = self.bids.best()
        return best is not None and price <= best.price

    def bbo(self) -> tuple[Optional[Decimal], Optional[Decimal]]:
        """Best bid and best ask prices; None for an empty side."""
        best_bid = self.bids.best()
        best_ask = self.asks.best()
        return (
            best_bid.price if best_bid is not None else None,
            best_ask.price if best_ask is not None else None,
        )

    def snapshot(self, levels: int) -> tuple[list[DepthLevel], list[DepthLevel]]:
        """Top levels of both sides, best first."""
        return self.bids.depth(levels), self.asks.depth(levels)

    def expire_gtd(self, now: int) -> list[OrderNode]:
        """Remove and return every resting order whose expiry is at or before now."""
        expired = []
        for node in self.index.iter_expired(now):
            self._remove_resting(node)
            expired.append(node)
        return expired

    def level_info(self, side: Side, price: Decimal) -> Optional[DepthLevel]:
        """Current state of the level at price on side, or None if it does not exist."""
        level = self._tree(side).get(price)
        if level is None:
            return None
        return DepthLevel(level.price, level.total_qty, level.display_qty, level.order_count)

    def would_exceed_max_depth(self, price: Decimal, side: Side) -> bool:
        """True if a new level at price would fall outside the configured maximum depth."""
        max_depth = self.config.max_depth
        if max_depth == 0:
            return False
        tree = self._tree(side)
        if len(tree) < max_depth:
            return False
        if tree.get(price) is not None:
            return False
        levels = tree.depth(max_depth)
        if len(levels) < max_depth:
            return False
        worst = levels[max_depth - 1].price
        if side == Side.BID:
            return price < worst
        return price > worst

    def open_order_count(self) -> int:
        """Number of resting orders."""
        return len(self.index)

    def bid_level_count(self) -> int:
        """Number of bid price levels."""
        return len(self.bids)

    def ask_level_count(self) -> int:
        """Number of ask price levels."""
        return len(self.asks)

    # --- internals ---------------------------------------------------------

    def _tree(self, side: Side) -> PriceLevelTree:
        return self.bids if side == Side.BID else self.asks

    def _remove_resting(self, node: OrderNode) -> None:
        level = node.level
        if level is None:
            raise OrderNotFoundError(f"order not resting: {node.order_id}")
        level.unlink(node)
        self.index.delete(node.order_id)
        if level.is_empty():
            self._tree(node.side).delete(level.price)

    def _rest_node(self, node: OrderNode) -> None:
        level, created = self._tree(node.side).get_or_create(node.price)
        if created:
            level.total_qty = _zero_like(node.remain_qty)
            level.display_qty = _zero_like(node.display_qty)
        level.append(node)
        self.index.put(node.order_id, node)

    def _crosses(self, incoming: OrderNode, level: PriceLevel) -> bool:
        if incoming.order_type == OrderType.MARKET:
            return True
        if incoming.side == Side.BID:
            return incoming.price >= level.price
        return incoming.price <= level.price

    def _can_fill_full(self, incoming: OrderNode) -> bool:
        available = _zero_like(incoming.remain_qty)
        for level in self._tree(Side(incoming.side).opposite()):
            if not self._crosses(incoming, level):
                break
            available += level.total_qty
            if available >= incoming.remain_qty:
                break
        return available >= incoming.remain_qty

    def _effective_stp_mode(self, incoming: OrderNode, maker: OrderNode) -> STPMode:
        if incoming.stp_mode != STPMode.DISABLED:
            return STPMode(incoming.stp_mode)
        if maker.stp_mode != STPMode.DISABLED:
            return STPMode(maker.stp_mode)
        return STPMode(self.config.stp_mode)

    def _stp_enabled(self, incoming: OrderNode, maker: OrderNode) -> bool:
        if incoming.user_id != maker.user_id:
            return False
        return self._effective_stp_mode(incoming, maker) != STPMode.DISABLED

    def _apply_stp(
        self, incoming: OrderNode, maker: OrderNode, level: PriceLevel, mode: STPMode
    ) -> tuple[Optional[OrderNode], bool]:
        """Apply self-trade prevention; return the next node and whether to keep matching."""
        if mode == STPMode.CANCEL_BOTH:
            self._remove_resting(maker)
            incoming.remain_qty = _zero_like(incoming.remain_qty)
            return None, False
        if mode == STPMode.CANCEL_MAKER:
            following = maker.next_node
            self._remove_resting(maker)
            return following, True
        if mode == STPMode.CANCEL_TAKER:
            incoming.remain_qty = _zero_like(incoming.remain_qty)
            return None, False
        if mode == STPMode.DECREMENT_CANCEL:
            if maker.remain_qty > incoming.remain_qty:
                level.decrement_qty(maker, incoming.remain_qty)
                incoming.remain_qty = _zero_like(incoming.remain_qty)
                return None, False
            incoming.remain_qty -= maker.remain_qty
            incoming.filled_qty += maker.remain_qty
            following = maker.next_node
            self._remove_resting(maker)
            return following, True
        return maker.next_node, True

    def _match(self, incoming: OrderNode) -> tuple[list[Fill], Disposition]:
        if incoming.tif == TIF.FOK and not self._can_fill_full(incoming):
            return [], Disposition.REJECTED

        fills: list[Fill] = []
        opposite = self._tree(Side(incoming.side).opposite())
        stopped = False

        while incoming.remain_qty > 0 and not stopped:
            level = opposite.best()
            if level is None or not self._crosses(incoming, level):
                break

            node = level.head
            while node is not None and incoming.remain_qty > 0:
                if self._stp_enabled(incoming, node):
                    mode = self._effective_stp_mode(incoming, node)
                    node, keep_going = self._apply_stp(incoming, node, level, mode)
                    if not keep_going:
                        stopped = True
                        break
                    continue

                fill_qty = min(node.remain_qty, incoming.remain_qty)
                incoming.remain_qty -= fill_qty
                incoming.filled_qty += fill_qty
                level.decrement_qty(node, fill_qty)

                fill = Fill(
                    maker_order_id=node.order_id,
                    taker_order_id=incoming.order_id,
                    maker_user_id=node.user_id,
                    taker_user_id=incoming.user_id,
                    maker_side=node.side,
                    price=level.price,
                    qty=fill_qty,
                    maker_remain_qty=node.remain_qty,
                    taker_remain_qty=incoming.remain_qty,
                    maker_seq_num=node.seq_num,
                    taker_seq_num=incoming.seq_num,
                )
                exhausted = node.remain_qty == 0

                if exhausted and node.hidden_qty > 0:
                    level.replenish_iceberg(node, next(self._order_seq))
                    fill.maker_level_exists = True
                    fill.maker_level_total_qty = level.total_qty
                    fill.maker_level_display_qty = level.display_qty
                    fill.maker_level_order_count = level.order_count
                    fills.append(fill)
                    node = level.head
                    continue

                if exhausted:
                    following = node.next_node
                    level.unlink(node)
                    self.index.delete(node.order_id)
                    node = following

                fill.maker_level_exists = not level.is_empty()
                if fill.maker_level_exists:
                    fill.maker_level_total_qty = level.total_qty
                    fill.maker_level_display_qty = level.display_qty
                    fill.maker_level_order_count = level.order_count
                fills.append(fill)

                if not exhausted:
                    break

            if stopped:
                break
            if level.is_empty():
                opposite.delete(level.price)

        if incoming.remain_qty == 0:
            return fills, Disposition.FULLY_FILLED
        if incoming.tif == TIF.IOC:
            return fills, Disposition.PARTIAL_FILL_CANCELED if fills else Disposition.CANCELED
        if incoming.order_type == OrderType.MARKET:
            return fills, Disposition.CANCELED

        self._rest_node(incoming)
        return fills, Disposition.PARTIAL_FILL_RESTED if fills else Disposition.RESTED