"""Equity snapshot repository — SQLite operations for equity_snapshots table."""

import sqlite3
from datetime import datetime
from typing import Optional

from tradeguard.ledger.models import EquityPoint
from tradeguard.repos.db import get_connection


class EquityRepo:
    """Data access layer for equity snapshots.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def insert_point(
        self,
        symbol: str,
        point: EquityPoint,
        conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Record an equity snapshot, inside *conn*'s transaction if given."""
        own = conn is None
        if own:
            conn = get_connection(self._db_path)
        try:
            conn.execute(
                "INSERT INTO equity_snapshots (symbol, timestamp, balance) VALUES (?, ?, ?)",
                (symbol, point.timestamp.isoformat(), point.balance),
            )
            if own:
                conn.commit()
        finally:
            if own:
                conn.close()

    def get_points(self, symbol: str) -> list[EquityPoint]:
        """Return *symbol*'s snapshots oldest first."""
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute(
                "SELECT timestamp, balance FROM equity_snapshots WHERE symbol = ? ORDER BY id ASC",
                (symbol,),
            ).fetchall()
            return [
                EquityPoint(datetime.fromisoformat(r["timestamp"]), r["balance"])
                for r in rows
            ]
        finally:
            conn.close()
