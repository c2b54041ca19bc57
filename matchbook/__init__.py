"""Central limit order book with price-time matching, call auctions and a circuit breaker."""

__version__ = "0.1.0"
__all__ = ["auction", "book", "circuit", "config", "levels", "orders"]