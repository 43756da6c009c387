"""Strategy repository — SQLite operations for the strategies table."""

from datetime import datetime, timezone
import sqlite3
from typing import Optional

from tradeguard.ledger.models import StrategyState
from tradeguard.repos.db import get_connection


class StrategyRepo:
    """Data access layer for per-symbol strategy rows.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def upsert(
        self, state: StrategyState, conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Insert or refresh the scalar fields of *state*.

        With *conn* the write joins the caller's transaction and is not
        committed here.
        """
        own = conn is None
        if own:
            conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                INSERT INTO strategies
                    (symbol, strategy_name, initial_balance, current_equity,
                     peak_equity, max_drawdown, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(symbol) DO UPDATE SET
                    strategy_name = excluded.strategy_name,
                    current_equity = excluded.current_equity,
                    peak_equity = excluded.peak_equity,
                    max_drawdown = excluded.max_drawdown,
                    updated_at = excluded.updated_at
                """,
                (
                    state.symbol, state.strategy_name, state.initial_balance,
                    state.current_equity, state.peak_equity, state.max_drawdown,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            if own:
                conn.commit()
        finally:
            if own:
                conn.close()

    def get(self, symbol: str) -> Optional[dict]:
        """Return the row for *symbol*, or ``None``."""
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT * FROM strategies WHERE symbol = ?", (symbol,)
            ).fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def get_all(self) -> list[dict]:
        """Every persisted strategy row, ordered by symbol."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute("SELECT * FROM strategies ORDER BY symbol").fetchall()
            return [dict(r) for r in rows]
        finally:
            conn.close()
