"""SQLite position store for stockfolio."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Callable, Iterator, Optional

from stockfolio.errors import NotFoundError, StorageError, ValidationError
from stockfolio.models import DEFAULT_PORTFOLIO, OPEN, Position
from stockfolio.validation import (
    optional_text,
    validate_code,
    validate_date,
    validate_positive_price,
    validate_positive_quantity,
)

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 3

COLUMNS = (
    "id",
    "code",
    "name",
    "buy_price",
    "buy_date",
    "quantity",
    "status",
    "portfolio",
    "sell_price",
    "sell_date",
    "profit_loss",
    "profit_loss_rate",
    "holding_days",
    "parent_id",
)

IMMUTABLE_FIELDS = ("id", "code", "buy_price", "buy_date", "portfolio")

Mutator = Callable[[Position], Position]


class PositionStore:
    """SQLite-backed keyed collection of position records.

    Reads run on their own connection and see only committed data. Writes
    are serialized by a per-instance lock and run inside ``BEGIN IMMEDIATE``
    transactions, so a multi-row change (a reduce writes two rows) is never
    observed half-applied.
    """

    def __init__(self, db_path: Path):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._write_lock = threading.RLock()
        self._ensure_db_dir()
        self._init_schema()

    def _ensure_db_dir(self) -> None:
        """Ensure the database directory exists."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create database directory: {e}") from e

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection, converting driver errors to StorageError."""
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.db_path}: {e}") from e
        try:
            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Database error: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a write transaction.

        Commits on success and rolls back if anything raises, including
        ledger errors raised by a mutator.
        """
        with self._write_lock, self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    # ==================== Schema ====================

    def _init_schema(self) -> None:
        """Create the schema on first run and upgrade older files in place."""
        with self._write_lock, self._connect() as conn:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
            if version >= SCHEMA_VERSION:
                return

            cursor = conn.cursor()

            # Version 1: buy lots
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS positions (
                    id TEXT PRIMARY KEY,
                    code TEXT NOT NULL,
                    name TEXT NOT NULL,
                    buy_price REAL NOT NULL,
                    buy_date TEXT NOT NULL,
                    quantity INTEGER NOT NULL,
                    status TEXT NOT NULL DEFAULT 'OPEN',
                    portfolio TEXT NOT NULL DEFAULT 'default'
                )
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_code ON positions(code)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_status ON positions(status)")
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_portfolio ON positions(portfolio)"
            )

            # Version 2: sale details
            # Version 3: realized P&L and reduce lineage
            existing = {
                row["name"] for row in cursor.execute("PRAGMA table_info(positions)")
            }
            for column, column_type in (
                ("sell_price", "REAL"),
                ("sell_date", "TEXT"),
                ("profit_loss", "REAL"),
                ("profit_loss_rate", "REAL"),
                ("holding_days", "INTEGER"),
                ("parent_id", "TEXT"),
            ):
                if column not in existing:
                    logger.info("Adding column %s to positions", column)
                    cursor.execute(
                        f"ALTER TABLE positions ADD COLUMN {column} {column_type}"
                    )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_parent_id ON positions(parent_id)"
            )

            # Files written before statuses were renamed
            cursor.execute("UPDATE positions SET status = 'OPEN' WHERE status = 'POSITION'")
            cursor.execute("UPDATE positions SET status = 'CLOSED' WHERE status = 'CLOSE'")

            cursor.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            conn.commit()
            if version:
                logger.info(
                    "Upgraded %s from schema %d to %d", self.db_path, version, SCHEMA_VERSION
                )

    def get_schema_version(self) -> int:
        """Get the schema version recorded in the database file."""
        with self._connect() as conn:
            return conn.execute("PRAGMA user_version").fetchone()[0]

    # ==================== Row mapping ====================

    @staticmethod
    def _row_to_position(row: sqlite3.Row) -> Position:
        return Position(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            buy_price=row["buy_price"],
            buy_date=date.fromisoformat(row["buy_date"]),
            quantity=row["quantity"],
            status=row["status"],
            portfolio=row["portfolio"],
            sell_price=row["sell_price"],
            sell_date=date.fromisoformat(row["sell_date"]) if row["sell_date"] else None,
            profit_loss=row["profit_loss"],
            profit_loss_rate=row["profit_loss_rate"],
            holding_days=row["holding_days"],
            parent_id=row["parent_id"],
        )

    @staticmethod
    def _position_to_row(position: Position) -> tuple:
        return (
            position.id,
            position.code,
            position.name,
            position.buy_price,
            position.buy_date.isoformat(),
            position.quantity,
            position.status,
            position.portfolio,
            position.sell_price,
            position.sell_date.isoformat() if position.sell_date else None,
            position.profit_loss,
            position.profit_loss_rate,
            position.holding_days,
            position.parent_id,
        )

    def _select(self, where: str = "", params: tuple = ()) -> list[Position]:
        """Run a SELECT over positions, returning records in insertion order."""
        with self._connect() as conn:
            cursor = conn.execute(
                f"SELECT {', '.join(COLUMNS)} FROM positions {where} ORDER BY rowid",
                params,
            )
            return [self._row_to_position(row) for row in cursor.fetchall()]

    def _fetch(self, conn: sqlite3.Connection, position_id: str) -> Position:
        row = conn.execute(
            f"SELECT {', '.join(COLUMNS)} FROM positions WHERE id = ?",
            (position_id,),
        ).fetchone()
        if row is None:
            raise NotFoundError(position_id)
        return self._row_to_position(row)

    @staticmethod
    def _insert(conn: sqlite3.Connection, position: Position) -> None:
        placeholders = ", ".join("?" for _ in COLUMNS)
        conn.execute(
            f"INSERT INTO positions ({', '.join(COLUMNS)}) VALUES ({placeholders})",
            PositionStore._position_to_row(position),
        )

    @staticmethod
    def _write(conn: sqlite3.Connection, position: Position) -> None:
        assignments = ", ".join(f"{column} = ?" for column in COLUMNS[1:])
        row = PositionStore._position_to_row(position)
        conn.execute(
            f"UPDATE positions SET {assignments} WHERE id = ?",
            row[1:] + (position.id,),
        )

    @staticmethod
    def _check_update(current: Position, updated: Position) -> None:
        """Enforce record-level invariants on a mutated position."""
        for field in IMMUTABLE_FIELDS:
            if getattr(updated, field) != getattr(current, field):
                raise ValidationError(f"{field} cannot be changed after creation", field=field)
        if updated.quantity > current.quantity:
            raise ValidationError("quantity can only decrease", field="quantity")
        if current.is_closed and updated.is_open:
            raise ValidationError("a closed position cannot be reopened", field="status")
        if updated.is_open and updated.quantity <= 0:
            raise ValidationError("an open position must have a positive quantity", field="quantity")

    # ==================== Positions ====================

    def create(
        self,
        code: str,
        buy_price: float,
        buy_date: date,
        quantity: int,
        name: Optional[str] = None,
        portfolio: Optional[str] = None,
    ) -> Position:
        """Create a new OPEN position.

        Args:
            code: Instrument code.
            buy_price: Price per unit, finite and positive.
            buy_date: Acquisition date (``date`` or YYYY-MM-DD string).
            quantity: Units bought, a positive whole number.
            name: Display name. Defaults to the code.
            portfolio: Owning portfolio. Defaults to ``"default"``.

        Returns:
            The stored position with its freshly assigned id.

        Raises:
            ValidationError: If any field is invalid.
        """
        code = validate_code(code)
        position = Position(
            code=code,
            name=optional_text(name, code),
            buy_price=validate_positive_price(buy_price, "buy_price"),
            buy_date=validate_date(buy_date, "buy_date"),
            quantity=validate_positive_quantity(quantity),
            status=OPEN,
            portfolio=optional_text(portfolio, DEFAULT_PORTFOLIO),
        )
        with self._transaction() as conn:
            self._insert(conn, position)
        return position

    def get(self, position_id: str) -> Position:
        """Get a position by id.

        Raises:
            NotFoundError: If no position has this id.
        """
        with self._connect() as conn:
            return self._fetch(conn, position_id)

    def get_all(self) -> list[Position]:
        """Get every position regardless of status."""
        return self._select()

    def get_open(self) -> list[Position]:
        """Get all OPEN positions."""
        return self._select("WHERE status = 'OPEN'")

    def get_closed(self) -> list[Position]:
        """Get all CLOSED positions."""
        return self._select("WHERE status = 'CLOSED'")

    def get_by_code(self, code: str) -> list[Position]:
        """Get every position (any status) for an instrument code."""
        return self._select("WHERE code = ?", (code.strip(),))

    def get_by_portfolio(self, portfolio: str, open_only: bool = True) -> list[Position]:
        """Get the positions of a portfolio, OPEN ones only by default."""
        if open_only:
            return self._select("WHERE portfolio = ? AND status = 'OPEN'", (portfolio,))
        return self._select("WHERE portfolio = ?", (portfolio,))

    def get_portfolios(self) -> list[str]:
        """Get distinct portfolio names among OPEN positions, first seen first."""
        return list(dict.fromkeys(p.portfolio for p in self.get_open()))

    def get_open_codes(self) -> list[str]:
        """Get distinct instrument codes among OPEN positions, first seen first."""
        return list(dict.fromkeys(p.code for p in self.get_open()))

    def update(
        self,
        position_id: str,
        mutator: Mutator,
        spawn: Optional[Mutator] = None,
    ) -> Position:
        """Apply a change to one position atomically.

        Args:
            position_id: Id of the position to change.
            mutator: Receives the current record and returns the new one.
                Raising aborts the update with nothing written.
            spawn: Optional builder receiving the current record and
                returning a new record inserted in the same transaction.

        Returns:
            The updated position.

        Raises:
            NotFoundError: If no position has this id.
            ValidationError: If the mutated record breaks an invariant.
        """
        with self._transaction() as conn:
            current = self._fetch(conn, position_id)
            updated = mutator(current)
            self._check_update(current, updated)
            self._write(conn, updated)
            if spawn is not None:
                self._insert(conn, spawn(current))
            return updated

    def delete(self, position_id: str) -> None:
        """Permanently delete a position.

        Raises:
            NotFoundError: If no position has this id.
        """
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM positions WHERE id = ?", (position_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(position_id)

    def count(self, status: Optional[str] = None) -> int:
        """Count positions, optionally only those with a given status."""
        with self._connect() as conn:
            if status is None:
                row = conn.execute("SELECT COUNT(*) AS count FROM positions").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS count FROM positions WHERE status = ?", (status,)
                ).fetchone()
            return row["count"]

    def clear(self) -> int:
        """Delete every position. Returns the number of records removed."""
        with self._transaction() as conn:
            return conn.execute("DELETE FROM positions").rowcount
