"""Persistence layer for stockfolio."""

from stockfolio.db.store import PositionStore

__all__ = ["PositionStore"]
