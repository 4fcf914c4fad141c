"""Position ledger: mutations, P&L aggregation and closed-trade reporting."""

from stockfolio.ledger.aggregator import (
    DEFAULT_FULL_POSITION,
    PositionSizing,
    aggregate_positions,
)
from stockfolio.ledger.closed_trades import build_closed_trades_summary, calculate_statistics
from stockfolio.ledger.engine import LedgerEngine

__all__ = [
    "DEFAULT_FULL_POSITION",
    "LedgerEngine",
    "PositionSizing",
    "aggregate_positions",
    "build_closed_trades_summary",
    "calculate_statistics",
]
