"""Deterministic mock quote provider for development and tests."""

from typing import Iterable, Mapping, Optional

from stockfolio.models import Quote
from stockfolio.quotes.base import BaseQuoteProvider


class MockQuoteProvider(BaseQuoteProvider):
    """Returns a fixed price per code with no I/O.

    The price is ``10.0 + 0.5 * len(code)`` unless an explicit price was
    given for the code, so repeated calls always agree.
    """

    BASE_PRICE = 10.0
    PRICE_PER_CHAR = 0.5

    def __init__(self, prices: Optional[Mapping[str, float]] = None):
        """Initialize the mock provider.

        Args:
            prices: Optional fixed prices overriding the formula.
        """
        self._prices = dict(prices or {})

    @property
    def name(self) -> str:
        return "mock"

    def price_for(self, code: str) -> float:
        """Get the deterministic price for a code."""
        if code in self._prices:
            return self._prices[code]
        return self.BASE_PRICE + len(code) * self.PRICE_PER_CHAR

    def get_quotes(
        self, codes: Iterable[str], timeout: Optional[float] = None
    ) -> dict[str, Quote]:
        return {
            code: Quote(code=code, name=f"Mock {code}", price=self.price_for(code))
            for code in dict.fromkeys(codes)
        }
