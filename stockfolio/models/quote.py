"""Quote data model."""

from pydantic import BaseModel, Field


class Quote(BaseModel):
    """Current price of one instrument as returned by a quote provider."""

    code: str = Field(..., min_length=1, description="Instrument code")
    name: str = Field(..., description="Instrument display name")
    price: float = Field(..., ge=0, description="Current price")

    model_config = {"frozen": True}
