"""Profit-and-loss view models.

Three levels of rollup: one lot (``PositionProfitLoss``), one instrument
within a portfolio (``TargetProfitLoss``) and one portfolio
(``PortfolioProfitLoss``).
"""

from datetime import date

from pydantic import BaseModel, Field

from stockfolio.models.position import PositionStatus


class PositionProfitLoss(BaseModel):
    """Unrealized P&L of a single open lot."""

    id: str = Field(..., description="Lot id")
    code: str = Field(..., description="Instrument code")
    name: str = Field(..., description="Display name")
    buy_date: date = Field(..., description="Acquisition date")
    buy_price: float = Field(..., description="Price per unit at acquisition")
    quantity: int = Field(..., description="Open quantity")
    real_price: float = Field(..., description="Current quote")
    position_cost: float = Field(..., description="buy_price x quantity")
    profit_loss: float = Field(..., description="(real_price - buy_price) x quantity")
    profit_loss_rate: float = Field(..., description="profit_loss / position_cost")
    status: PositionStatus = Field(..., description="Lot status")
    portfolio: str = Field(..., description="Owning portfolio")

    model_config = {"frozen": True}


class TargetProfitLoss(BaseModel):
    """Aggregated P&L of one instrument within a portfolio."""

    code: str = Field(..., description="Instrument code")
    name: str = Field(..., description="Display name of the latest lot")
    real_price: float = Field(..., description="Current quote")
    full_position: float = Field(..., description="Capital for a complete allocation")
    position_profit_losses: list[PositionProfitLoss] = Field(
        default_factory=list, description="Per-lot P&L in first-seen order"
    )
    cost_position_rate: float = Field(..., description="Total cost / full_position")
    current_position_rate: float = Field(..., description="Market value / full_position")
    target_profit_loss: float = Field(..., description="Sum of lot P&L")
    target_profit_loss_rate: float = Field(..., description="P&L / total cost")
    recommended_buy_in_point: float = Field(..., description="Latest buy price x 0.9")
    recommended_sale_out_point: float = Field(..., description="Latest buy price x 1.1")

    model_config = {"frozen": True}


class PortfolioProfitLoss(BaseModel):
    """Aggregated P&L of one portfolio."""

    portfolio: str = Field(..., description="Portfolio name")
    full_position: float = Field(..., description="Capital for a complete allocation")
    target_profit_losses: list[TargetProfitLoss] = Field(
        default_factory=list, description="Per-instrument P&L in first-seen order"
    )
    sum_position_cost: float = Field(..., description="Total cost of all lots")
    sum_profit_losses: float = Field(..., description="Total unrealized P&L")
    sum_profit_losses_rate: float = Field(..., description="P&L / total cost")

    model_config = {"frozen": True}
