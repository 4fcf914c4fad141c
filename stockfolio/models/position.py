"""Position (buy lot) data model."""

from datetime import date
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

OPEN = "OPEN"
CLOSED = "CLOSED"

DEFAULT_PORTFOLIO = "default"

PositionStatus = Literal["OPEN", "CLOSED"]


def new_position_id() -> str:
    """Generate a fresh position id."""
    return uuid4().hex


class Position(BaseModel):
    """Represents a single buy lot.

    OPEN lots carry the remaining quantity. CLOSED lots carry the quantity
    that was sold, together with the sale fields needed to recompute the
    realized P&L without reading any other record.
    """

    id: str = Field(default_factory=new_position_id, description="Unique lot id")
    code: str = Field(..., min_length=1, description="Instrument code")
    name: str = Field(..., min_length=1, description="Display name")
    buy_price: float = Field(..., gt=0, description="Price per unit at acquisition")
    buy_date: date = Field(..., description="Acquisition date")
    quantity: int = Field(..., ge=0, description="Remaining (OPEN) or sold (CLOSED) units")
    status: PositionStatus = Field(default=OPEN, description="Lifecycle status")
    portfolio: str = Field(default=DEFAULT_PORTFOLIO, description="Owning portfolio")
    sell_price: Optional[float] = Field(default=None, gt=0, description="Sale price")
    sell_date: Optional[date] = Field(default=None, description="Sale date")
    profit_loss: Optional[float] = Field(default=None, description="Realized P&L")
    profit_loss_rate: Optional[float] = Field(default=None, description="Realized P&L / cost")
    holding_days: Optional[int] = Field(default=None, description="Days held")
    parent_id: Optional[str] = Field(
        default=None, description="Lot this closed slice was reduced from"
    )

    model_config = {"frozen": True}

    @property
    def is_open(self) -> bool:
        return self.status == OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == CLOSED

    @property
    def cost(self) -> float:
        """Cost basis of the lot (buy_price x quantity)."""
        return self.buy_price * self.quantity
