"""Profit-and-loss arithmetic shared by the engine, aggregator and reports."""

from datetime import date


def profit_loss(price: float, buy_price: float, quantity: int) -> float:
    """P&L of ``quantity`` units bought at ``buy_price`` and valued at ``price``."""
    return (price - buy_price) * quantity


def ratio(numerator: float, denominator: float) -> float:
    """Safe division returning 0 for a zero denominator.

    Used for every rate: P&L over cost basis, cost over full position.
    """
    if denominator == 0:
        return 0.0
    return numerator / denominator


def holding_days(buy_date: date, sell_date: date) -> int:
    """Calendar days between acquisition and sale."""
    return (sell_date - buy_date).days
