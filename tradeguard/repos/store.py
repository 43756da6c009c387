"""Ledger store — syncs ledger state with the SQLite repositories.

The engine stays I/O-free; the service calls ``save_event`` after each
applied command and ``load_strategy`` once at startup.  Every write set
runs in a single transaction: it lands in full or not at all.
"""

import logging
from datetime import datetime, timezone

from tradeguard.ledger.models import EquityPoint, LedgerEvent, StrategyState
from tradeguard.models.strategy_config import StrategyConfig
from tradeguard.repos.db import get_connection, init_db
from tradeguard.repos.equity_repo import EquityRepo
from tradeguard.repos.strategy_repo import StrategyRepo
from tradeguard.repos.trade_repo import TradeRepo

logger = logging.getLogger("tradeguard.store")


class LedgerStore:
    """Composes the strategy, trade and equity repositories.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        init_db(db_path)
        self._db_path = db_path
        self.strategies = StrategyRepo(db_path)
        self.trades = TradeRepo(db_path)
        self.equity = EquityRepo(db_path)

    def load_strategy(self, config: StrategyConfig) -> StrategyState:
        """Rebuild *config*'s ledger, seeding a fresh row when none exists."""
        row = self.strategies.get(config.symbol)
        if row is None:
            state = StrategyState.from_config(config, datetime.now(timezone.utc))
            self._write(state, points=state.equity_curve[:1])
            logger.info(
                "Seeded %s at $%.2f.", state.symbol, state.initial_balance,
            )
            return state

        state = StrategyState(
            symbol=row["symbol"],
            strategy_name=row["strategy_name"],
            initial_balance=row["initial_balance"],
            current_equity=row["current_equity"],
            peak_equity=row["peak_equity"],
            max_drawdown=row["max_drawdown"],
            trades=self.trades.get_trades(config.symbol),
            equity_curve=self.equity.get_points(config.symbol),
        )
        if not state.equity_curve:
            seed = EquityPoint(datetime.now(timezone.utc), state.current_equity)
            self.equity.insert_point(state.symbol, seed)
            state.equity_curve.append(seed)
        logger.info(
            "Loaded %s: equity $%.2f, %d trade(s).",
            state.symbol, state.current_equity, len(state.trades),
        )
        return state

    def save_event(self, event: LedgerEvent, state: StrategyState) -> None:
        """Write back whatever *event* changed, atomically.

        Raises:
            sqlite3.Error: Nothing was written.
        """
        if not event.changed:
            return
        points = [event.equity_point] if event.equity_point is not None else []
        self._write(state, trade=event.trade, points=points)

    def _write(self, state: StrategyState, trade=None, points=()) -> None:
        conn = get_connection(self._db_path)
        try:
            with conn:
                self.strategies.upsert(state, conn=conn)
                if trade is not None:
                    self.trades.upsert_trade(trade, conn=conn)
                for point in points:
                    self.equity.insert_point(state.symbol, point, conn=conn)
        finally:
            conn.close()
