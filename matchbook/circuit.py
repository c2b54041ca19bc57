"""Price-move circuit breaker over a rolling window of trade prices."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_DOWN, Decimal
from typing import Optional, Union

from matchbook.config import CircuitBreakerConfig

__all__ = ["PriceSample", "RollingWindow", "CircuitBreaker"]

MAX_SAMPLES = 10_000
_MOVE_QUANTUM = Decimal("0.0001")

Duration = Union[timedelta, int]


def _to_ns(duration: Duration) -> int:
    if isinstance(duration, timedelta):
        return (duration // timedelta(microseconds=1)) * 1000
    return int(duration)


@dataclass(frozen=True)
class PriceSample:
    """A single price observation with its timestamp in nanoseconds."""

    price: Decimal
    timestamp: int


class RollingWindow:
    """Bounded window of recent price samples within a time span."""

    def __init__(self, duration: Duration) -> None:
        self._duration_ns = _to_ns(duration)
        self._samples: deque[PriceSample] = deque(maxlen=MAX_SAMPLES)

    def add(self, price: Decimal, now: int) -> None:
        """Record a sample and evict samples older than the window."""
        self._samples.append(PriceSample(price, now))
        cutoff = now - self._duration_ns
        while self._samples and self._samples[0].timestamp < cutoff:
            self._samples.popleft()

    def oldest_price(self) -> Optional[Decimal]:
        """Return the oldest price still in the window, or None if empty."""
        return self._samples[0].price if self._samples else None

    def newest_price(self) -> Optional[Decimal]:
        """Return the most recently added price, or None if empty."""
        return self._samples[-1].price if self._samples else None

    def __len__(self) -> int:
        return len(self._samples)

    def reset(self) -> None:
        """Discard all samples."""
        self._samples.clear()


class CircuitBreaker:
    """Signals a halt when price moves beyond a threshold within the window."""

    def __init__(self, cfg: CircuitBreakerConfig) -> None:
        self.cfg = cfg
        self.window = RollingWindow(cfg.window_duration)
        self._cooldown_ns = _to_ns(cfg.cooldown_period)
        self._last_halt = 0

    def check(self, trade_price: Decimal, now: int) -> Optional[str]:
        """Record a trade price; return a halt reason if the market should halt."""
        self.window.add(trade_price, now)

        if self._cooldown_ns > 0 and self._last_halt > 0 and now - self._last_halt < self._cooldown_ns:
            return None

        if len(self.window) < 2:
            return None

        oldest = self.window.oldest_price()
        if oldest is None or oldest == 0:
            return None

        move = (abs(trade_price - oldest) / oldest).quantize(_MOVE_QUANTUM, rounding=ROUND_DOWN)
        if move > self.cfg.max_move_percent:
            return "price move exceeded circuit breaker threshold"
        return None

    @property
    def last_halt(self) -> int:
        """Timestamp of the most recent halt recorded."""
        return self._last_halt

    def set_last_halt(self, ts: int) -> None:
        """Record a halt time and reset the price window."""
        self._last_halt = ts
        self.window.reset()