"""Ledger engine: buy, reduce, close and delete position lots."""

import logging
from datetime import date
from typing import Optional

from stockfolio.db.store import PositionStore
from stockfolio.errors import InvalidStateError, ValidationError
from stockfolio.ledger.calc import holding_days, profit_loss, ratio
from stockfolio.models import CLOSED, Position
from stockfolio.models.position import new_position_id
from stockfolio.validation import (
    validate_date,
    validate_positive_price,
    validate_positive_quantity,
)

logger = logging.getLogger(__name__)


def _realize(
    position: Position,
    quantity: int,
    sell_price: float,
    sell_date: date,
    **changes,
) -> Position:
    """Build the CLOSED form of ``position`` for ``quantity`` units sold."""
    amount = profit_loss(sell_price, position.buy_price, quantity)
    return position.model_copy(
        update={
            "status": CLOSED,
            "quantity": quantity,
            "sell_price": sell_price,
            "sell_date": sell_date,
            "profit_loss": amount,
            "profit_loss_rate": ratio(amount, position.buy_price * quantity),
            "holding_days": holding_days(position.buy_date, sell_date),
            **changes,
        }
    )


def _check_sell_date(position: Position, sell_date: date) -> None:
    if sell_date < position.buy_date:
        raise ValidationError(
            f"sell_date {sell_date} is before buy_date {position.buy_date}",
            field="sell_date",
        )


class LedgerEngine:
    """Applies domain operations to a position store.

    State machine per lot::

        OPEN --close-->            CLOSED
        OPEN --reduce(partial)-->  OPEN (lower quantity) + new CLOSED slice
        any  --delete-->           removed

    Checks that depend on the current record run inside the store's write
    transaction, so two concurrent reduces of one lot cannot over-sell it.
    """

    def __init__(self, store: PositionStore):
        """Initialize the engine.

        Args:
            store: PositionStore holding the lots.
        """
        self._store = store

    @property
    def store(self) -> PositionStore:
        return self._store

    def buy(
        self,
        code: str,
        buy_price: float,
        buy_date: date,
        quantity: int,
        name: Optional[str] = None,
        portfolio: Optional[str] = None,
    ) -> Position:
        """Record a new OPEN lot.

        Raises:
            ValidationError: If price or quantity is not a finite positive
                number, or the code is empty.
        """
        position = self._store.create(
            code=code,
            buy_price=buy_price,
            buy_date=buy_date,
            quantity=quantity,
            name=name,
            portfolio=portfolio,
        )
        logger.info(
            "Bought %s x%d @ %s into %s (id=%s)",
            position.code,
            position.quantity,
            position.buy_price,
            position.portfolio,
            position.id,
        )
        return position

    def close(self, position_id: str, sell_price: float, sell_date: date) -> Position:
        """Close a whole lot at ``sell_price``.

        Returns:
            The CLOSED position with its realized P&L.

        Raises:
            ValidationError: If the price is invalid or the sale predates the buy.
            NotFoundError: If the id is unknown.
            InvalidStateError: If the lot is already CLOSED.
        """
        sell_price = validate_positive_price(sell_price, "sell_price")
        sell_date = validate_date(sell_date, "sell_date")

        def mutate(position: Position) -> Position:
            if position.is_closed:
                raise InvalidStateError(position.id, position.status, "close")
            _check_sell_date(position, sell_date)
            return _realize(position, position.quantity, sell_price, sell_date)

        closed = self._store.update(position_id, mutate)
        logger.info(
            "Closed %s (id=%s) x%d @ %s, P&L %.2f",
            closed.code,
            closed.id,
            closed.quantity,
            sell_price,
            closed.profit_loss,
        )
        return closed

    def reduce(
        self,
        position_id: str,
        reduce_quantity: int,
        sell_price: float,
        sell_date: date,
    ) -> Position:
        """Sell part of a lot.

        The lot keeps its id with a lower quantity. The sold units become a
        new CLOSED record pointing back at it through ``parent_id``. Selling
        the entire remaining quantity is rejected: use ``close`` for that.

        Returns:
            The new CLOSED slice.

        Raises:
            ValidationError: If ``reduce_quantity`` is not in
                ``(0, quantity)``, the price is invalid or the sale predates
                the buy.
            NotFoundError: If the id is unknown.
            InvalidStateError: If the lot is already CLOSED.
        """
        reduce_quantity = validate_positive_quantity(reduce_quantity, "reduce_quantity")
        sell_price = validate_positive_price(sell_price, "sell_price")
        sell_date = validate_date(sell_date, "sell_date")
        spawned: list[Position] = []

        def mutate(position: Position) -> Position:
            if position.is_closed:
                raise InvalidStateError(position.id, position.status, "reduce")
            if reduce_quantity >= position.quantity:
                raise ValidationError(
                    f"reduce_quantity {reduce_quantity} must be less than the remaining "
                    f"quantity {position.quantity}; close the position instead",
                    field="reduce_quantity",
                )
            _check_sell_date(position, sell_date)
            return position.model_copy(
                update={"quantity": position.quantity - reduce_quantity}
            )

        def spawn(position: Position) -> Position:
            # the slice is a new lot, so it gets a fresh id
            slice_ = _realize(
                position,
                reduce_quantity,
                sell_price,
                sell_date,
                id=new_position_id(),
                parent_id=position.id,
            )
            spawned.append(slice_)
            return slice_

        remaining = self._store.update(position_id, mutate, spawn=spawn)
        closed_slice = spawned[0]
        logger.info(
            "Reduced %s (id=%s) by %d @ %s, %d left, slice id=%s, P&L %.2f",
            remaining.code,
            remaining.id,
            reduce_quantity,
            sell_price,
            remaining.quantity,
            closed_slice.id,
            closed_slice.profit_loss,
        )
        return closed_slice

    def delete(self, position_id: str) -> None:
        """Permanently delete a lot.

        Raises:
            NotFoundError: If the id is unknown.
        """
        self._store.delete(position_id)
        logger.info("Deleted position %s", position_id)
