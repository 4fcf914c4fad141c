"""Quote providers for stockfolio."""

from stockfolio.quotes.base import BaseQuoteProvider
from stockfolio.quotes.mock import MockQuoteProvider
from stockfolio.quotes.tencent import TencentQuoteProvider

__all__ = [
    "BaseQuoteProvider",
    "MockQuoteProvider",
    "TencentQuoteProvider",
]
