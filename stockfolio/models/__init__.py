"""Data models for stockfolio."""

from stockfolio.models.closed_trade import (
    ClosedTrade,
    ClosedTradesStatistics,
    ClosedTradesSummary,
)
from stockfolio.models.position import (
    CLOSED,
    DEFAULT_PORTFOLIO,
    OPEN,
    Position,
    PositionStatus,
)
from stockfolio.models.profit_loss import (
    PortfolioProfitLoss,
    PositionProfitLoss,
    TargetProfitLoss,
)
from stockfolio.models.quote import Quote
from stockfolio.models.summary import PortfolioSummary, PositionStats

__all__ = [
    "CLOSED",
    "DEFAULT_PORTFOLIO",
    "OPEN",
    "ClosedTrade",
    "ClosedTradesStatistics",
    "ClosedTradesSummary",
    "PortfolioProfitLoss",
    "PortfolioSummary",
    "Position",
    "PositionProfitLoss",
    "PositionStats",
    "PositionStatus",
    "Quote",
    "TargetProfitLoss",
]
