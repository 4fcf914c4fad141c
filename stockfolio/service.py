"""Command surface of the position ledger.

``LedgerService`` is what a client talks to. Commands go through the ledger
engine; views read a store snapshot, resolve quotes with no lock held and
hand both to the pure aggregation functions.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from stockfolio.db.store import PositionStore
from stockfolio.errors import QuoteUnavailableError
from stockfolio.ledger import (
    LedgerEngine,
    PositionSizing,
    aggregate_positions,
    build_closed_trades_summary,
)
from stockfolio.ledger.calc import ratio
from stockfolio.models import (
    DEFAULT_PORTFOLIO,
    ClosedTradesSummary,
    PortfolioProfitLoss,
    PortfolioSummary,
    Position,
    PositionStats,
)
from stockfolio.quotes import BaseQuoteProvider, MockQuoteProvider, TencentQuoteProvider
from stockfolio.validation import optional_text

logger = logging.getLogger(__name__)


class LedgerService:
    """Commands and views over one position store."""

    def __init__(
        self,
        store: PositionStore,
        live_provider: Optional[BaseQuoteProvider] = None,
        mock_provider: Optional[BaseQuoteProvider] = None,
        sizing: Optional[PositionSizing] = None,
        quote_timeout: Optional[float] = None,
        default_portfolio: str = DEFAULT_PORTFOLIO,
        prefer_mock: bool = False,
    ):
        """Initialize the service.

        Args:
            store: PositionStore holding the lots.
            live_provider: Provider for real quotes. A Tencent provider is
                created on first use when omitted.
            mock_provider: Provider used for simulated quotes.
            sizing: Full-position configuration for the P&L view.
            quote_timeout: Default quote lookup timeout in seconds.
            default_portfolio: Portfolio for buys that do not name one.
            prefer_mock: Use simulated quotes even when not asked to.
        """
        self._store = store
        self._engine = LedgerEngine(store)
        self._live_provider = live_provider
        self._mock_provider = mock_provider or MockQuoteProvider()
        self._sizing = sizing or PositionSizing()
        self._quote_timeout = quote_timeout
        self._default_portfolio = default_portfolio
        self._prefer_mock = prefer_mock

    @classmethod
    def from_config(cls, config: dict, db_path: Optional[Path] = None) -> "LedgerService":
        """Build a service from a loaded config dict.

        Args:
            config: Parsed configuration (see ``stockfolio.config``).
            db_path: Database path overriding the configured one.

        Raises:
            ConfigurationError: If a configured value is invalid.
        """
        from stockfolio import config as cfg

        store = PositionStore(db_path or cfg.get_db_path(config))
        return cls(
            store,
            sizing=cfg.get_sizing(config),
            quote_timeout=cfg.get_quote_timeout(config),
            default_portfolio=cfg.get_default_portfolio(config),
            prefer_mock=cfg.get_quote_source(config) == "mock",
        )

    @property
    def store(self) -> PositionStore:
        return self._store

    @property
    def sizing(self) -> PositionSizing:
        return self._sizing

    def close(self) -> None:
        """Release provider resources."""
        if self._live_provider is not None:
            self._live_provider.close()
        self._mock_provider.close()

    def _get_live_provider(self) -> BaseQuoteProvider:
        if self._live_provider is None:
            self._live_provider = TencentQuoteProvider()
        return self._live_provider

    # ==================== Commands ====================

    def buy(
        self,
        code: str,
        name: Optional[str],
        buy_price: float,
        buy_date: date,
        quantity: int,
        portfolio: Optional[str] = None,
    ) -> Position:
        """Record a new OPEN lot. Returns the stored position."""
        return self._engine.buy(
            code=code,
            buy_price=buy_price,
            buy_date=buy_date,
            quantity=quantity,
            name=name,
            portfolio=optional_text(portfolio, self._default_portfolio),
        )

    def close_position(self, position_id: str, sell_price: float, sell_date: date) -> None:
        self._engine.close(position_id, sell_price, sell_date)

    def reduce_position(
        self,
        position_id: str,
        reduce_quantity: int,
        sell_price: float,
        sell_date: date,
    ) -> None:
        self.sell_part(position_id, reduce_quantity, sell_price, sell_date)

    def sell_part(
        self,
        position_id: str,
        reduce_quantity: int,
        sell_price: float,
        sell_date: date,
    ) -> Position:
        """Reduce a lot and return the CLOSED slice holding the realized P&L."""
        return self._engine.reduce(position_id, reduce_quantity, sell_price, sell_date)

    def delete_position(self, position_id: str) -> None:
        self._engine.delete(position_id)

    def reset_database(self) -> None:
        """Delete every position record."""
        removed = self._store.clear()
        logger.warning("Reset database %s, removed %d records", self._store.db_path, removed)

    # ==================== Position views ====================

    def get_positions(self) -> list[Position]:
        """Get all OPEN positions."""
        return self._store.get_open()

    def get_position_records(self, code: str) -> list[Position]:
        """Get every record (OPEN and CLOSED) of an instrument."""
        return self._store.get_by_code(code)

    def get_portfolios(self) -> list[str]:
        return self._store.get_portfolios()

    def get_codes_in_position(self) -> list[str]:
        return self._store.get_open_codes()

    def get_portfolio_positions(self, portfolio: str) -> list[Position]:
        return self._store.get_by_portfolio(portfolio)

    def get_position_stats(self, code: str) -> PositionStats:
        """Totals over the OPEN lots of one instrument."""
        lots = [p for p in self._store.get_by_code(code) if p.is_open]
        total_quantity = sum(p.quantity for p in lots)
        total_cost = sum(p.cost for p in lots)
        return PositionStats(
            code=code.strip(),
            record_count=len(lots),
            total_quantity=total_quantity,
            total_cost=total_cost,
            avg_cost_price=ratio(total_cost, total_quantity),
        )

    def get_portfolio_summary(self, portfolio: str) -> PortfolioSummary:
        """Cost summary of one portfolio's OPEN lots."""
        lots = self._store.get_by_portfolio(portfolio)
        return PortfolioSummary(
            portfolio=portfolio,
            total_cost=sum(p.cost for p in lots),
            record_count=len(lots),
            positions=lots,
        )

    def get_all_portfolio_summaries(self) -> list[PortfolioSummary]:
        """Cost summaries of every portfolio with OPEN lots, from one snapshot."""
        grouped: dict[str, list[Position]] = {}
        for position in self._store.get_open():
            grouped.setdefault(position.portfolio, []).append(position)
        return [
            PortfolioSummary(
                portfolio=portfolio,
                total_cost=sum(p.cost for p in lots),
                record_count=len(lots),
                positions=lots,
            )
            for portfolio, lots in grouped.items()
        ]

    # ==================== P&L views ====================

    def uses_mock_quotes(self, use_mock: bool = False) -> bool:
        """Whether the P&L view prices with simulated quotes."""
        return use_mock or self._prefer_mock

    def get_portfolio_profit_loss_view(
        self,
        use_mock: bool = False,
        timeout: Optional[float] = None,
    ) -> list[PortfolioProfitLoss]:
        """Unrealized P&L of every OPEN position, grouped by portfolio.

        Args:
            use_mock: Price with simulated quotes instead of live ones.
            timeout: Quote lookup timeout in seconds. Defaults to the
                service's configured timeout.

        Returns:
            One entry per portfolio; empty when nothing is open.

        Raises:
            QuoteUnavailableError: If any open instrument cannot be priced.
        """
        snapshot = self._store.get_open()
        if not snapshot:
            return []

        codes = list(dict.fromkeys(p.code for p in snapshot))
        provider = (
            self._mock_provider if self.uses_mock_quotes(use_mock) else self._get_live_provider()
        )
        timeout = self._quote_timeout if timeout is None else timeout
        logger.debug("Pricing %d codes with %s", len(codes), provider.name)
        prices = provider.get_prices(codes, timeout=timeout)

        return aggregate_positions(snapshot, prices, self._sizing)

    def get_closed_trades_summary(self) -> ClosedTradesSummary:
        """Realized results of every CLOSED record."""
        return build_closed_trades_summary(self._store.get_closed())

    def fetch_stock_name(self, code: str) -> tuple[str, Optional[float]]:
        """Look up an instrument's name and current price.

        Falls back to ``(code, None)`` when the live lookup fails.
        """
        code = code.strip()
        try:
            quotes = self._get_live_provider().get_quotes([code], timeout=self._quote_timeout)
        except QuoteUnavailableError as e:
            logger.warning("Name lookup for %s failed: %s", code, e.message)
            return code, None
        quote = quotes.get(code)
        if quote is None:
            return code, None
        return quote.name, quote.price
