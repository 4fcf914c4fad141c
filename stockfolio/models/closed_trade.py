"""Closed-trade report models."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class ClosedTrade(BaseModel):
    """Represents one realized exit (a CLOSED lot)."""

    id: str = Field(..., description="Lot id")
    parent_id: Optional[str] = Field(default=None, description="Lot reduced from")
    code: str = Field(..., description="Instrument code")
    name: str = Field(..., description="Display name")
    portfolio: str = Field(..., description="Owning portfolio")
    buy_date: date = Field(..., description="Acquisition date")
    buy_price: float = Field(..., description="Price per unit at acquisition")
    sell_date: date = Field(..., description="Sale date")
    sell_price: float = Field(..., description="Price per unit at sale")
    quantity: int = Field(..., description="Units sold")
    profit_loss: float = Field(..., description="Realized P&L")
    profit_loss_rate: float = Field(..., description="Realized P&L / cost")
    holding_days: int = Field(..., description="Days between buy and sale")

    model_config = {"frozen": True}


class ClosedTradesStatistics(BaseModel):
    """Summary statistics over all closed trades."""

    total_trades: int = Field(default=0, ge=0)
    profitable_trades: int = Field(default=0, ge=0)
    loss_trades: int = Field(default=0, ge=0)
    win_rate: float = Field(default=0.0, ge=0, le=1, description="profitable / total")
    total_profit_loss: float = Field(default=0.0)
    average_profit_loss_rate: float = Field(default=0.0)
    max_profit: float = Field(default=0.0, description="Largest realized P&L")
    max_loss: float = Field(default=0.0, description="Smallest realized P&L")
    average_holding_days: float = Field(default=0.0)

    model_config = {"frozen": True}


class ClosedTradesSummary(BaseModel):
    """Closed trades (latest sale first) plus their statistics."""

    trades: list[ClosedTrade] = Field(default_factory=list)
    statistics: ClosedTradesStatistics = Field(default_factory=ClosedTradesStatistics)

    model_config = {"frozen": True}
