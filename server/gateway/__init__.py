"""HTTP gateway over the per-player game state table."""

__version__ = "0.1.0"
