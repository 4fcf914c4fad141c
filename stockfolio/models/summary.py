"""Cost-only summaries of open positions (no quotes required)."""

from pydantic import BaseModel, Field

from stockfolio.models.position import Position


class PositionStats(BaseModel):
    """Open-lot totals for one instrument code."""

    code: str = Field(..., description="Instrument code")
    record_count: int = Field(..., ge=0, description="Number of open lots")
    total_quantity: int = Field(..., ge=0, description="Open units across lots")
    total_cost: float = Field(..., ge=0, description="Cost basis across lots")
    avg_cost_price: float = Field(..., ge=0, description="total_cost / total_quantity")

    model_config = {"frozen": True}


class PortfolioSummary(BaseModel):
    """Open lots of one portfolio with their combined cost."""

    portfolio: str = Field(..., description="Portfolio name")
    total_cost: float = Field(..., ge=0, description="Cost basis across lots")
    record_count: int = Field(..., ge=0, description="Number of open lots")
    positions: list[Position] = Field(default_factory=list)

    model_config = {"frozen": True}
