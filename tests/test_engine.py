"""Property-based tests for the ledger engine (buy, close, reduce, delete)."""

import tempfile
import threading
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stockfolio.db.store import PositionStore
from stockfolio.errors import InvalidStateError, NotFoundError, ValidationError
from stockfolio.ledger import LedgerEngine
from stockfolio.models import CLOSED, OPEN


@pytest.fixture
def engine():
    """Create an engine over a temporary database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield LedgerEngine(PositionStore(Path(tmpdir) / "test.db"))


# Prices on a cent grid keep the expected P&L exactly representable
price_strategy = st.integers(min_value=1, max_value=1_000_000).map(lambda cents: cents / 100)
quantity_strategy = st.integers(min_value=1, max_value=100000)
buy_date = date(2024, 1, 10)


class TestClose:
    """
    *For any* OPEN position, close realizes (sell_price - buy_price) * quantity
    and a second close fails without changing the stored record.
    """

    @given(buy_price=price_strategy, sell_price=price_strategy, quantity=quantity_strategy)
    @settings(max_examples=50)
    def test_close_realizes_profit_loss(self, buy_price: float, sell_price: float, quantity: int):
        with tempfile.TemporaryDirectory() as tmpdir:
            engine = LedgerEngine(PositionStore(Path(tmpdir) / "test.db"))
            position = engine.buy("X", buy_price, buy_date, quantity)

            closed = engine.close(position.id, sell_price, date(2024, 2, 9))

            assert closed.id == position.id
            assert closed.status == CLOSED
            assert closed.quantity == quantity
            assert closed.profit_loss == (sell_price - buy_price) * quantity
            assert closed.holding_days == 30
            assert engine.store.get(position.id) == closed

            with pytest.raises(InvalidStateError) as exc_info:
                engine.close(position.id, sell_price + 1, date(2024, 2, 10))

            assert exc_info.value.status == CLOSED
            assert engine.store.get(position.id).profit_loss == closed.profit_loss

    def test_close_rate(self, engine: LedgerEngine):
        position = engine.buy("X", 10.0, buy_date, 100)

        closed = engine.close(position.id, 12.0, buy_date)

        assert closed.profit_loss == pytest.approx(200.0)
        assert closed.profit_loss_rate == pytest.approx(0.2)
        assert closed.holding_days == 0

    def test_close_unknown_id(self, engine: LedgerEngine):
        with pytest.raises(NotFoundError):
            engine.close("missing", 10.0, buy_date)

    @pytest.mark.parametrize(
        "sell_price", [0, -1.0, float("nan"), float("inf"), Decimal("-1"), Decimal("Infinity")]
    )
    def test_close_rejects_invalid_price(self, engine: LedgerEngine, sell_price):
        position = engine.buy("X", 10.0, buy_date, 100)

        with pytest.raises(ValidationError):
            engine.close(position.id, sell_price, buy_date)

        assert engine.store.get(position.id) == position

    def test_close_rejects_sale_before_buy(self, engine: LedgerEngine):
        position = engine.buy("X", 10.0, buy_date, 100)

        with pytest.raises(ValidationError) as exc_info:
            engine.close(position.id, 11.0, date(2024, 1, 9))

        assert exc_info.value.field == "sell_date"
        assert engine.store.get(position.id).is_open

    def test_close_accepts_datetime_and_string_dates(self, engine: LedgerEngine):
        a = engine.buy("A", 10.0, buy_date, 1)
        b = engine.buy("B", 10.0, buy_date, 1)

        assert engine.close(a.id, 11.0, datetime(2024, 1, 12, 15, 30)).sell_date == date(2024, 1, 12)
        assert engine.close(b.id, 11.0, "2024-01-13").sell_date == date(2024, 1, 13)


class TestReduce:
    """
    *For any* reduce of r units with 0 < r < Q, the lot keeps its id with
    Q - r units, a new CLOSED slice holds r units, and total quantity is
    conserved.
    """

    @given(
        buy_price=price_strategy,
        sell_price=price_strategy,
        quantity=st.integers(min_value=2, max_value=100000),
        data=st.data(),
    )
    @settings(max_examples=50)
    def test_reduce_conserves_quantity(self, buy_price, sell_price, quantity, data):
        reduce_quantity = data.draw(st.integers(min_value=1, max_value=quantity - 1))

        with tempfile.TemporaryDirectory() as tmpdir:
            engine = LedgerEngine(PositionStore(Path(tmpdir) / "test.db"))
            position = engine.buy("X", buy_price, buy_date, quantity, name="Name", portfolio="P")

            slice_ = engine.reduce(position.id, reduce_quantity, sell_price, date(2024, 1, 20))

            remaining = engine.store.get(position.id)
            assert remaining.status == OPEN
            assert remaining.quantity == quantity - reduce_quantity

            assert slice_.id != position.id
            assert slice_.parent_id == position.id
            assert slice_.status == CLOSED
            assert slice_.quantity == reduce_quantity
            assert slice_.profit_loss == (sell_price - buy_price) * reduce_quantity
            assert slice_.holding_days == 10
            assert (slice_.code, slice_.name, slice_.portfolio) == ("X", "Name", "P")
            assert (slice_.buy_price, slice_.buy_date) == (buy_price, buy_date)
            assert engine.store.get(slice_.id) == slice_

            lots = engine.store.get_by_code("X")
            assert sum(p.quantity for p in lots) == quantity

    @given(
        quantity=quantity_strategy,
        extra=st.integers(min_value=0, max_value=1000),
    )
    @settings(max_examples=30)
    def test_reduce_whole_or_more_is_rejected(self, quantity: int, extra: int):
        """
        *For any* r >= Q, reduce fails with ValidationError and leaves the
        position unmodified.
        """
        with tempfile.TemporaryDirectory() as tmpdir:
            engine = LedgerEngine(PositionStore(Path(tmpdir) / "test.db"))
            position = engine.buy("X", 10.0, buy_date, quantity)

            with pytest.raises(ValidationError) as exc_info:
                engine.reduce(position.id, quantity + extra, 12.0, buy_date)

            assert exc_info.value.field == "reduce_quantity"
            assert engine.store.get_all() == [position]

    def test_repeated_reduces_then_close(self, engine: LedgerEngine):
        position = engine.buy("X", 10.0, buy_date, 100)

        engine.reduce(position.id, 30, 11.0, date(2024, 1, 11))
        engine.reduce(position.id, 20, 12.0, date(2024, 1, 12))
        engine.close(position.id, 13.0, date(2024, 1, 13))

        lots = engine.store.get_all()
        assert all(p.is_closed for p in lots)
        assert sorted(p.quantity for p in lots) == [20, 30, 50]
        assert sum(p.profit_loss for p in lots) == pytest.approx(30 * 1 + 20 * 2 + 50 * 3)

    @pytest.mark.parametrize("reduce_quantity", [0, -1, 2.5, True, Decimal("2.5")])
    def test_reduce_rejects_invalid_quantity(self, engine: LedgerEngine, reduce_quantity):
        position = engine.buy("X", 10.0, buy_date, 100)

        with pytest.raises(ValidationError):
            engine.reduce(position.id, reduce_quantity, 11.0, buy_date)

        assert engine.store.get_all() == [position]

    def test_reduce_closed_lot(self, engine: LedgerEngine):
        position = engine.buy("X", 10.0, buy_date, 100)
        engine.close(position.id, 11.0, buy_date)

        with pytest.raises(InvalidStateError):
            engine.reduce(position.id, 10, 11.0, buy_date)

        assert engine.store.count() == 1

    def test_reduce_unknown_id(self, engine: LedgerEngine):
        with pytest.raises(NotFoundError):
            engine.reduce("missing", 1, 11.0, buy_date)

    def test_reduce_rejects_sale_before_buy(self, engine: LedgerEngine):
        position = engine.buy("X", 10.0, buy_date, 100)

        with pytest.raises(ValidationError):
            engine.reduce(position.id, 10, 11.0, date(2023, 12, 31))

        assert engine.store.get_all() == [position]


class TestConcurrentReduce:
    """Concurrent reduces of one lot never sell more than it holds."""

    def test_concurrent_reduces_never_oversell(self, engine: LedgerEngine):
        position = engine.buy("X", 10.0, buy_date, 10)
        errors = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            try:
                engine.reduce(position.id, 3, 11.0, buy_date)
            except ValidationError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # 10 units allow exactly three reduces of 3 (the last would leave 1)
        remaining = engine.store.get(position.id)
        slices = engine.store.get_closed()
        assert remaining.quantity == 1
        assert len(slices) == 3
        assert len(errors) == 5
        assert remaining.quantity + sum(p.quantity for p in slices) == 10


class TestDelete:
    """Delete removes exactly one record with no cascade."""

    def test_delete_keeps_slices(self, engine: LedgerEngine):
        position = engine.buy("X", 10.0, buy_date, 100)
        slice_ = engine.reduce(position.id, 40, 11.0, buy_date)

        engine.delete(position.id)

        assert [p.id for p in engine.store.get_all()] == [slice_.id]

    def test_delete_unknown_id(self, engine: LedgerEngine):
        engine.buy("X", 10.0, buy_date, 100)
        before = engine.store.get_all()

        with pytest.raises(NotFoundError):
            engine.delete("missing")

        assert engine.store.get_all() == before
