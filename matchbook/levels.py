"""Price levels, the sorted trees of levels for each side, and the order index."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterator, Optional

from sortedcontainers import SortedDict

from matchbook.orders import OrderNode, Side

__all__ = ["PriceLevel", "DepthLevel", "PriceLevelTree", "OrderIndex"]


@dataclass(eq=False)
class PriceLevel:
    """FIFO queue of orders at one price, with running quantity totals."""

    price: Decimal
    total_qty: Decimal = Decimal(0)
    display_qty: Decimal = Decimal(0)
    order_count: int = 0
    _head: Optional[OrderNode] = field(default=None, init=False, repr=False)
    _tail: Optional[OrderNode] = field(default=None, init=False, repr=False)

    @property
    def head(self) -> Optional[OrderNode]:
        """Oldest order, filled first."""
        return self._head

    @property
    def tail(self) -> Optional[OrderNode]:
        """Newest order, filled last."""
        return self._tail

    def __iter__(self) -> Iterator[OrderNode]:
        node = self._head
        while node is not None:
            following = node.next_node
            yield node
            node = following

    def append(self, node: OrderNode) -> None:
        """Add node at the tail and include it in the totals."""
        node.prev_node = self._tail
        node.next_node = None
        if self._tail is None:
            self._head = node
        else:
            self._tail.next_node = node
        self._tail = node
        self.total_qty += node.remain_qty
        self.display_qty += node.display_qty
        self.order_count += 1
        node.level = self

    def unlink(self, node: OrderNode) -> None:
        """Remove node from the queue and from the totals."""
        if node.prev_node is not None:
            node.prev_node.next_node = node.next_node
        else:
            self._head = node.next_node
        if node.next_node is not None:
            node.next_node.prev_node = node.prev_node
        else:
            self._tail = node.prev_node
        self.total_qty -= node.remain_qty
        self.display_qty -= node.display_qty
        self.order_count -= 1
        node.prev_node = None
        node.next_node = None
        node.level = None

    def decrement_qty(self, node: OrderNode, fill_qty: Decimal) -> None:
        """Reduce node by a fill; its visible part shrinks by at most what is displayed."""
        node.remain_qty -= fill_qty
        node.filled_qty += fill_qty
        display_fill = min(fill_qty, node.display_qty)
        node.display_qty -= display_fill
        self.total_qty -= fill_qty
        self.display_qty -= display_fill

    def replenish_iceberg(self, node: OrderNode, new_seq_num: int) -> None:
        """Move hidden quantity into view, give a new sequence number and requeue at the tail."""
        replenish = min(node.hidden_qty, node.orig_display_qty)
        self.unlink(node)
        node.hidden_qty -= replenish
        node.remain_qty = replenish
        node.display_qty = replenish
        node.seq_num = new_seq_num
        self.append(node)

    def is_empty(self) -> bool:
        """True when no orders are queued."""
        return self._head is None


@dataclass(frozen=True)
class DepthLevel:
    """Snapshot of one price level."""

    price: Decimal
    total_qty: Decimal
    display_qty: Decimal
    order_count: int


def _descending(price: Decimal) -> Decimal:
    return -price


class PriceLevelTree:
    """Price levels of one side, iterated from best to worst price."""

    def __init__(self, side: Side) -> None:
        self.side = side
        if side is Side.BID:
            self._levels: SortedDict = SortedDict(_descending)
        else:
            self._levels = SortedDict()

    def best(self) -> Optional[PriceLevel]:
        """Highest bid or lowest ask, or None when empty."""
        if not self._levels:
            return None
        return self._levels.peekitem(0)[1]

    def insert(self, level: PriceLevel) -> None:
        """Add a level, replacing any level at the same price."""
        self._levels[level.price] = level

    def delete(self, price: Decimal) -> None:
        """Remove the level at price, if present."""
        self._levels.pop(price, None)

    def get(self, price: Decimal) -> Optional[PriceLevel]:
        """Return the level at price, or None."""
        return self._levels.get(price)

    def get_or_create(self, price: Decimal) -> tuple[PriceLevel, bool]:
        """Return the level at price and whether it was newly created."""
        level = self._levels.get(price)
        if level is not None:
            return level, False
        level = PriceLevel(price)
        self.insert(level)
        return level, True

    def depth(self, n: int) -> list[DepthLevel]:
        """Snapshot the best n levels, best first."""
        if n <= 0:
            return []
        return [
            DepthLevel(level.price, level.total_qty, level.display_qty, level.order_count)
            for level in self._levels.values()[:n]
        ]

    def __iter__(self) -> Iterator[PriceLevel]:
        return iter(list(self._levels.values()))

    def __len__(self) -> int:
        return len(self._levels)


class OrderIndex:
    """Lookup from order id to resting order node."""

    def __init__(self) -> None:
        self._nodes: dict[str, OrderNode] = {}

    def put(self, order_id: str, node: OrderNode) -> None:
        """Insert or replace the node for order_id."""
        self._nodes[order_id] = node

    def get(self, order_id: str) -> Optional[OrderNode]:
        """Return the node for order_id, or None."""
        return self._nodes.get(order_id)

    def delete(self, order_id: str) -> None:
        """Remove order_id if present."""
        self._nodes.pop(order_id, None)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def iter_expired(self, now: int) -> Iterator[OrderNode]:
        """Yield nodes with an expiry at or before now; the index may be changed meanwhile."""
        for node in list(self._nodes.values()):
            if 0 < node.expire_at <= now:
                yield node