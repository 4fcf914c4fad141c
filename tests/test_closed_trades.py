"""Tests for the closed-trade report."""

from datetime import date

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stockfolio.ledger import build_closed_trades_summary, calculate_statistics
from stockfolio.ledger.closed_trades import to_closed_trade
from stockfolio.models import CLOSED, OPEN, ClosedTrade, Position


def closed_position(
    profit_loss: float,
    sell_date: date = date(2024, 2, 1),
    buy_date: date = date(2024, 1, 1),
    quantity: int = 10,
    buy_price: float = 100.0,
) -> Position:
    """A CLOSED lot whose realized P&L is exactly ``profit_loss``."""
    sell_price = buy_price + profit_loss / quantity
    return Position(
        code="X",
        name="X",
        buy_price=buy_price,
        buy_date=buy_date,
        quantity=quantity,
        status=CLOSED,
        sell_price=sell_price,
        sell_date=sell_date,
    )


def make_trade(profit_loss: float, rate: float = 0.0, days: int = 0) -> ClosedTrade:
    return ClosedTrade(
        id=f"t{profit_loss}",
        code="X",
        name="X",
        portfolio="default",
        buy_date=date(2024, 1, 1),
        buy_price=10.0,
        sell_date=date(2024, 1, 1),
        sell_price=10.0,
        quantity=1,
        profit_loss=profit_loss,
        profit_loss_rate=rate,
        holding_days=days,
    )


class TestStatistics:
    """Statistics over realized P&L values."""

    def test_example(self):
        trades = [make_trade(100, days=10), make_trade(-50, days=20), make_trade(200, days=30)]

        stats = calculate_statistics(trades)

        assert stats.total_trades == 3
        assert stats.profitable_trades == 2
        assert stats.loss_trades == 1
        assert stats.win_rate == pytest.approx(2 / 3)
        assert stats.total_profit_loss == 250
        assert stats.max_profit == 200
        assert stats.max_loss == -50
        assert stats.average_holding_days == 20

    def test_empty(self):
        stats = calculate_statistics([])

        assert stats.total_trades == 0
        assert stats.win_rate == 0
        assert stats.total_profit_loss == 0
        assert stats.max_profit == 0
        assert stats.max_loss == 0

    def test_break_even_is_neither_win_nor_loss(self):
        stats = calculate_statistics([make_trade(0), make_trade(5)])

        assert stats.profitable_trades == 1
        assert stats.loss_trades == 0
        assert stats.win_rate == 0.5

    @given(
        amounts=st.lists(
            st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
            min_size=1,
            max_size=50,
        )
    )
    @settings(max_examples=100)
    def test_bounds(self, amounts: list[float]):
        """
        *For any* non-empty trade list, win rate is within [0, 1] and
        max_loss <= max_profit.
        """
        stats = calculate_statistics([make_trade(a) for a in amounts])

        assert 0 <= stats.win_rate <= 1
        assert stats.max_loss <= stats.max_profit
        assert stats.profitable_trades + stats.loss_trades <= stats.total_trades
        assert stats.total_profit_loss == pytest.approx(sum(amounts))


class TestSummary:
    """The report covers CLOSED records only, latest sale first."""

    def test_recomputes_from_record(self):
        position = closed_position(
            profit_loss=50.0,
            buy_date=date(2024, 1, 1),
            sell_date=date(2024, 1, 31),
        )

        trade = to_closed_trade(position)

        assert trade.profit_loss == pytest.approx(50.0)
        assert trade.profit_loss_rate == pytest.approx(50.0 / 1000.0)
        assert trade.holding_days == 30

    def test_only_closed_records_sorted_by_sale(self):
        early = closed_position(100, sell_date=date(2024, 1, 5))
        late = closed_position(-50, sell_date=date(2024, 3, 5))
        middle = closed_position(200, sell_date=date(2024, 2, 5))
        still_open = Position(
            code="Y", name="Y", buy_price=1.0, buy_date=date(2024, 1, 1), quantity=1, status=OPEN
        )

        summary = build_closed_trades_summary([early, still_open, late, middle])

        assert [t.id for t in summary.trades] == [late.id, middle.id, early.id]
        assert summary.statistics.total_trades == 3
        assert summary.statistics.total_profit_loss == pytest.approx(250)

    def test_same_sale_date_keeps_input_order(self):
        a = closed_position(1, sell_date=date(2024, 1, 5))
        b = closed_position(2, sell_date=date(2024, 1, 5))

        summary = build_closed_trades_summary([a, b])

        assert [t.id for t in summary.trades] == [a.id, b.id]

    def test_skips_closed_records_without_sale_details(self):
        legacy = Position(
            code="X", name="X", buy_price=1.0, buy_date=date(2024, 1, 1), quantity=1, status=CLOSED
        )

        summary = build_closed_trades_summary([legacy])

        assert summary.trades == []
        assert summary.statistics.total_trades == 0

    def test_carries_reduce_lineage(self):
        position = closed_position(10).model_copy(update={"parent_id": "parent"})

        [trade] = build_closed_trades_summary([position]).trades

        assert trade.parent_id == "parent"
