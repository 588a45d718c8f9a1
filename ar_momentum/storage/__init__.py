"""Storage layer for snapshot reads and alert persistence."""

from ar_momentum.storage.database import Database

__all__ = ["Database"]
