"""Profit-and-loss aggregation over open positions.

``aggregate_positions`` is a pure function of a position snapshot and a
quote map. It never fetches or guesses a price: if any open instrument has
no usable quote the whole call fails with ``QuoteUnavailableError``.
"""

import math
from typing import Iterable, Mapping, Optional

from pydantic import BaseModel, Field

from stockfolio.errors import QuoteUnavailableError
from stockfolio.ledger.calc import profit_loss, ratio
from stockfolio.models import (
    PortfolioProfitLoss,
    Position,
    PositionProfitLoss,
    TargetProfitLoss,
)

# Capital considered a complete allocation to one instrument
DEFAULT_FULL_POSITION = 50000.0

BUY_IN_FACTOR = 0.9
SALE_OUT_FACTOR = 1.1


class PositionSizing(BaseModel):
    """Resolves the full-position amount for a portfolio or instrument.

    Lookup order: per-instrument override within the portfolio, then the
    portfolio override, then the default.
    """

    default_full_position: float = Field(default=DEFAULT_FULL_POSITION, ge=0)
    portfolios: dict[str, float] = Field(default_factory=dict)
    instruments: dict[str, dict[str, float]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    def full_position_for(self, portfolio: str, code: Optional[str] = None) -> float:
        if code is not None:
            override = self.instruments.get(portfolio, {}).get(code)
            if override is not None:
                return override
        return self.portfolios.get(portfolio, self.default_full_position)


def _is_usable_price(price: Optional[float]) -> bool:
    return price is not None and math.isfinite(price) and price > 0


def missing_quotes(positions: Iterable[Position], quotes: Mapping[str, float]) -> list[str]:
    """Codes of OPEN positions with no usable price, in first-seen order."""
    missing = (
        p.code for p in positions if p.is_open and not _is_usable_price(quotes.get(p.code))
    )
    return list(dict.fromkeys(missing))


def position_profit_loss(position: Position, real_price: float) -> PositionProfitLoss:
    """Unrealized P&L of one lot valued at ``real_price``."""
    cost = position.cost
    amount = profit_loss(real_price, position.buy_price, position.quantity)
    return PositionProfitLoss(
        id=position.id,
        code=position.code,
        name=position.name,
        buy_date=position.buy_date,
        buy_price=position.buy_price,
        quantity=position.quantity,
        real_price=real_price,
        position_cost=cost,
        profit_loss=amount,
        profit_loss_rate=ratio(amount, cost),
        status=position.status,
        portfolio=position.portfolio,
    )


def target_profit_loss(
    code: str,
    lots: list[Position],
    real_price: float,
    full_position: float,
) -> TargetProfitLoss:
    """Aggregate the open lots of one instrument within a portfolio."""
    position_losses = [position_profit_loss(lot, real_price) for lot in lots]
    total_cost = sum(p.position_cost for p in position_losses)
    total_quantity = sum(p.quantity for p in position_losses)
    total_profit_loss = sum(p.profit_loss for p in position_losses)

    # max() keeps the first lot on a buy_date tie
    latest = max(lots, key=lambda lot: lot.buy_date)

    return TargetProfitLoss(
        code=code,
        name=latest.name,
        real_price=real_price,
        full_position=full_position,
        position_profit_losses=position_losses,
        cost_position_rate=ratio(total_cost, full_position),
        current_position_rate=ratio(real_price * total_quantity, full_position),
        target_profit_loss=total_profit_loss,
        target_profit_loss_rate=ratio(total_profit_loss, total_cost),
        recommended_buy_in_point=latest.buy_price * BUY_IN_FACTOR,
        recommended_sale_out_point=latest.buy_price * SALE_OUT_FACTOR,
    )


def aggregate_positions(
    positions: Iterable[Position],
    quotes: Mapping[str, float],
    sizing: Optional[PositionSizing] = None,
) -> list[PortfolioProfitLoss]:
    """Roll open positions up by instrument and portfolio.

    Args:
        positions: Position snapshot. CLOSED records are ignored.
        quotes: Current price per instrument code.
        sizing: Full-position configuration. Defaults to 50000 everywhere.

    Returns:
        One entry per portfolio. Portfolios, instruments and lots keep the
        order in which they first appear in ``positions``.

    Raises:
        QuoteUnavailableError: If any open instrument lacks a usable price.
    """
    sizing = sizing or PositionSizing()
    open_positions = [p for p in positions if p.is_open]

    missing = missing_quotes(open_positions, quotes)
    if missing:
        raise QuoteUnavailableError(missing)

    grouped: dict[str, dict[str, list[Position]]] = {}
    for position in open_positions:
        grouped.setdefault(position.portfolio, {}).setdefault(position.code, []).append(position)

    result = []
    for portfolio, by_code in grouped.items():
        targets = [
            target_profit_loss(
                code,
                lots,
                float(quotes[code]),
                sizing.full_position_for(portfolio, code),
            )
            for code, lots in by_code.items()
        ]
        sum_cost = sum(p.position_cost for t in targets for p in t.position_profit_losses)
        sum_profit_losses = sum(t.target_profit_loss for t in targets)
        result.append(
            PortfolioProfitLoss(
                portfolio=portfolio,
                full_position=sizing.full_position_for(portfolio),
                target_profit_losses=targets,
                sum_position_cost=sum_cost,
                sum_profit_losses=sum_profit_losses,
                sum_profit_losses_rate=ratio(sum_profit_losses, sum_cost),
            )
        )
    return result
