"""Base quote provider interface for stockfolio."""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from stockfolio.models import Quote


class BaseQuoteProvider(ABC):
    """Abstract base class for quote sources.

    All quote sources (live market data, deterministic mock) must inherit
    from this class and implement all abstract methods.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier of the source (e.g. ``"mock"``)."""
        pass

    @abstractmethod
    def get_quotes(
        self, codes: Iterable[str], timeout: Optional[float] = None
    ) -> dict[str, Quote]:
        """Get current quotes for a set of instrument codes.

        Args:
            codes: Instrument codes to price.
            timeout: Timeout in seconds for each network phase of the
                lookup (connect, read, write). Sources without I/O ignore it.

        Returns:
            Mapping of code to quote. Codes that could not be priced are
            omitted.

        Raises:
            QuoteUnavailableError: If the lookup failed as a whole
                (network error, timeout).
        """
        pass

    def get_prices(
        self, codes: Iterable[str], timeout: Optional[float] = None
    ) -> dict[str, float]:
        """Get current prices keyed by code."""
        return {code: quote.price for code, quote in self.get_quotes(codes, timeout).items()}

    def close(self) -> None:
        """Release any resources held by the provider."""
