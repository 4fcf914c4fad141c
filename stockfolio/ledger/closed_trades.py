"""Closed-trade report: realized results and win/loss statistics."""

import logging
from typing import Iterable

from stockfolio.ledger.calc import holding_days, profit_loss, ratio
from stockfolio.models import (
    ClosedTrade,
    ClosedTradesStatistics,
    ClosedTradesSummary,
    Position,
)

logger = logging.getLogger(__name__)


def to_closed_trade(position: Position) -> ClosedTrade:
    """Convert a CLOSED position into a closed trade.

    P&L, rate and holding days are recomputed from the record itself.
    """
    amount = profit_loss(position.sell_price, position.buy_price, position.quantity)
    return ClosedTrade(
        id=position.id,
        parent_id=position.parent_id,
        code=position.code,
        name=position.name,
        portfolio=position.portfolio,
        buy_date=position.buy_date,
        buy_price=position.buy_price,
        sell_date=position.sell_date,
        sell_price=position.sell_price,
        quantity=position.quantity,
        profit_loss=amount,
        profit_loss_rate=ratio(amount, position.cost),
        holding_days=holding_days(position.buy_date, position.sell_date),
    )


def calculate_statistics(trades: list[ClosedTrade]) -> ClosedTradesStatistics:
    """Calculate summary statistics over closed trades.

    Args:
        trades: Closed trades in any order.

    Returns:
        Statistics. Every figure is 0 when there are no trades.
    """
    if not trades:
        return ClosedTradesStatistics()

    total_trades = len(trades)
    amounts = [t.profit_loss for t in trades]
    profitable_trades = sum(1 for a in amounts if a > 0)
    loss_trades = sum(1 for a in amounts if a < 0)

    return ClosedTradesStatistics(
        total_trades=total_trades,
        profitable_trades=profitable_trades,
        loss_trades=loss_trades,
        win_rate=profitable_trades / total_trades,
        total_profit_loss=sum(amounts),
        average_profit_loss_rate=sum(t.profit_loss_rate for t in trades) / total_trades,
        max_profit=max(amounts),
        max_loss=min(amounts),
        average_holding_days=sum(t.holding_days for t in trades) / total_trades,
    )


def build_closed_trades_summary(positions: Iterable[Position]) -> ClosedTradesSummary:
    """Build the closed-trade report from a position snapshot.

    Only CLOSED records are considered. Trades are listed latest sale first.
    """
    trades = []
    for position in positions:
        if not position.is_closed:
            continue
        if position.sell_price is None or position.sell_date is None:
            # closed before sale details were recorded; nothing to realize
            logger.warning("Skipping closed position %s without sale details", position.id)
            continue
        trades.append(to_closed_trade(position))

    trades.sort(key=lambda t: t.sell_date, reverse=True)
    return ClosedTradesSummary(trades=trades, statistics=calculate_statistics(trades))
