"""Trade repository — SQLite CRUD for the trades table."""

import sqlite3
from datetime import datetime
from typing import Optional

from tradeguard.ledger.models import Trade
from tradeguard.repos.db import get_connection


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def row_to_trade(row: dict) -> Trade:
    """Rebuild a ``Trade`` from a ``trades`` row."""
    return Trade(
        id=row["id"],
        symbol=row["symbol"],
        strategy_name=row["strategy_name"],
        side=row["side"],
        entry_price=row["entry_price"],
        stop_loss=row["stop_loss"],
        take_profit=row["take_profit"],
        position_size=row["position_size"],
        risk_amount=row["risk_amount"],
        entry_time=_parse_ts(row["entry_time"]),
        status=row["status"],
        exit_price=row["exit_price"],
        exit_time=_parse_ts(row["exit_time"]),
        pnl=row["pnl"] or 0.0,
        alert_message=row["alert_message"],
    )


class TradeRepo:
    """Data access layer for trade records.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def upsert_trade(
        self, trade: Trade, conn: Optional[sqlite3.Connection] = None,
    ) -> None:
        """Insert a new trade or write back its exit fields.

        With *conn* the write joins the caller's transaction.
        """
        d = trade.to_dict()
        own = conn is None
        if own:
            conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                INSERT INTO trades
                    (id, symbol, strategy_name, side, entry_price, stop_loss,
                     take_profit, position_size, risk_amount, status,
                     entry_time, exit_price, exit_time, pnl, alert_message)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(symbol, id) DO UPDATE SET
                    status = excluded.status,
                    exit_price = excluded.exit_price,
                    exit_time = excluded.exit_time,
                    pnl = excluded.pnl
                """,
                (
                    d["id"], d["symbol"], d["strategy_name"], d["side"],
                    d["entry_price"], d["stop_loss"], d["take_profit"],
                    d["position_size"], d["risk_amount"], d["status"],
                    d["entry_time"], d["exit_price"], d["exit_time"],
                    d["pnl"], d["alert_message"],
                ),
            )
            if own:
                conn.commit()
        finally:
            if own:
                conn.close()

    # ── Read ─────────────────────────────────────────────────────────────

    def get_trades(
        self,
        symbol: str,
        status_filter: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Trade]:
        """Return *symbol*'s trades in entry order."""
        conn = get_connection(self._db_path)
        try:
            conditions = ["symbol = ?"]
            params: list = [symbol]
            if status_filter:
                conditions.append("status = ?")
                params.append(status_filter.upper())

            sql = f"SELECT * FROM trades WHERE {' AND '.join(conditions)} ORDER BY seq ASC"
            if limit is not None:
                sql += " LIMIT ?"
                params.append(limit)

            rows = conn.execute(sql, params).fetchall()
            return [row_to_trade(dict(r)) for r in rows]
        finally:
            conn.close()
