"""Live quotes from the Tencent Finance quote endpoint.

One batched request prices every code::

    GET http://qt.gtimg.cn/q=sh600519,sz000001

The GBK-encoded body holds one line per code::

    v_sh600519="1~Kweichow Moutai~600519~1850.00~...";

Fields are ``~``-separated: 1 is the name and 3 the current price.
"""

import logging
import re
from typing import Iterable, Optional

import httpx

from stockfolio.errors import QuoteUnavailableError
from stockfolio.models import Quote
from stockfolio.quotes.base import BaseQuoteProvider

logger = logging.getLogger(__name__)

BASE_URL = "http://qt.gtimg.cn"
DEFAULT_TIMEOUT = 10.0

_LINE_RE = re.compile(r'v_([A-Za-z0-9_.]+)="([^"]*)"')

NAME_FIELD = 1
PRICE_FIELD = 3


def parse_quote_response(text: str) -> dict[str, Quote]:
    """Parse a quote response body into quotes keyed by lower-case code.

    Lines that cannot be parsed are logged and skipped.
    """
    quotes: dict[str, Quote] = {}
    for key, payload in _LINE_RE.findall(text):
        fields = payload.split("~")
        if len(fields) <= PRICE_FIELD:
            logger.warning("Quote for %s has too few fields: %r", key, payload[:80])
            continue
        try:
            price = float(fields[PRICE_FIELD])
        except ValueError:
            logger.warning("Quote for %s has an invalid price: %r", key, fields[PRICE_FIELD])
            continue
        if price < 0:
            logger.warning("Quote for %s has a negative price: %s", key, price)
            continue
        code = key.lower()
        quotes[code] = Quote(code=code, name=fields[NAME_FIELD] or code, price=price)
    return quotes


class TencentQuoteProvider(BaseQuoteProvider):
    """Quote provider backed by the public Tencent Finance endpoint.

    Codes are exchange-prefixed tickers such as ``sh600519`` or
    ``sz000001``. Matching is case-insensitive; returned quotes are keyed by
    the code exactly as the caller passed it.
    """

    def __init__(self, base_url: str = BASE_URL, timeout: float = DEFAULT_TIMEOUT):
        """Initialize the provider.

        Args:
            base_url: Endpoint root.
            timeout: Default timeout in seconds, applied by httpx to each
                phase of a request (connect, read, write, pool) rather
                than to the request as a whole.
        """
        self._timeout = timeout
        self._client = httpx.Client(base_url=base_url, timeout=timeout)

    @property
    def name(self) -> str:
        return "tencent"

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def get_quotes(
        self, codes: Iterable[str], timeout: Optional[float] = None
    ) -> dict[str, Quote]:
        requested = list(dict.fromkeys(codes))
        if not requested:
            return {}

        timeout = self._timeout if timeout is None else timeout
        query = ",".join(code.lower() for code in requested)
        try:
            response = self._client.get(f"/q={query}", timeout=timeout)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise QuoteUnavailableError(requested, f"timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise QuoteUnavailableError(requested, f"request failed: {e}") from e

        response.encoding = "gbk"
        parsed = parse_quote_response(response.text)

        quotes: dict[str, Quote] = {}
        for code in requested:
            quote = parsed.get(code.lower())
            if quote is None:
                logger.warning("No quote returned for %s", code)
                continue
            quotes[code] = quote.model_copy(update={"code": code})
        logger.debug("Fetched %d/%d quotes", len(quotes), len(requested))
        return quotes
