"""TradeGuard — ledger engine.

Owns the per-symbol strategy state and applies entry and exit commands.
Risk math comes from ``tradeguard.risk``; the engine never performs I/O,
it returns a ``LedgerEvent`` for the caller to persist and deliver.
"""

import copy
import logging
import math
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from tradeguard.errors import (
    DuplicateTradeError,
    OpenTradeExistsError,
    UnknownSymbolError,
)
from tradeguard.ledger.equity_curve import EquityCurveRecorder
from tradeguard.ledger.models import (
    STATUS_CLOSED,
    TRADE_SIDES,
    EquityPoint,
    LedgerEvent,
    StrategyState,
    Trade,
)
from tradeguard.models.strategy_config import StrategyConfig
from tradeguard.notifications import DEFAULT_TITLE, entry_notification, exit_notification
from tradeguard.risk.drawdown import update_drawdown
from tradeguard.risk.pnl import calculate_pnl
from tradeguard.risk.position_sizer import position_size

logger = logging.getLogger("tradeguard.ledger")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _default_trade_id() -> str:
    return f"t_{int(time.time() * 1000)}"


class LedgerEngine:
    """Per-symbol trade ledger with fixed-fraction position sizing.

    Args:
        strategies: One ``StrategyConfig`` per tracked symbol.
        risk_fraction: Fraction of equity risked on every entry (0.01 = 1 %).
        recorder: Shared equity-curve recorder.  A private one is created
            when omitted.
        clock: Returns the current timezone-aware time.  Injected in tests.
        open_trade_policy: ``"fifo"`` allows several open trades per symbol
            and closes the oldest first; ``"single"`` rejects a new entry
            while one is open.
        id_factory: Generates ids for entries that arrive without one.
        notification_title: Title placed on every notification.
        target_url: Where a tapped notification should lead.
    """

    def __init__(
        self,
        strategies: Iterable[StrategyConfig],
        risk_fraction: float = 0.01,
        recorder: Optional[EquityCurveRecorder] = None,
        clock: Optional[Callable[[], datetime]] = None,
        open_trade_policy: str = "fifo",
        id_factory: Optional[Callable[[], str]] = None,
        notification_title: str = DEFAULT_TITLE,
        target_url: str = "/",
    ) -> None:
        if not 0 < risk_fraction <= 1:
            raise ValueError(f"risk_fraction must be in (0, 1], got {risk_fraction}")
        if open_trade_policy not in ("fifo", "single"):
            raise ValueError(
                f"open_trade_policy must be 'fifo' or 'single', got {open_trade_policy!r}"
            )

        self._risk_fraction = risk_fraction
        self._recorder = recorder or EquityCurveRecorder()
        self._clock = clock or _utcnow
        self._policy = open_trade_policy
        self._id_factory = id_factory or _default_trade_id
        self._title = notification_title
        self._target_url = target_url

        self._strategies: dict[str, StrategyState] = {}
        self._locks: dict[str, threading.Lock] = {}
        started_at = self._clock()
        for cfg in strategies:
            self.restore(StrategyState.from_config(cfg, started_at))

    # ── Properties ───────────────────────────────────────────────────────

    @property
    def symbols(self) -> list[str]:
        """Tracked symbols in configuration order."""
        return list(self._strategies.keys())

    @property
    def risk_fraction(self) -> float:
        return self._risk_fraction

    @property
    def open_trade_policy(self) -> str:
        return self._policy

    @property
    def recorder(self) -> EquityCurveRecorder:
        return self._recorder

    # ── Commands ─────────────────────────────────────────────────────────

    def apply_entry(
        self,
        symbol: str,
        side: str,
        entry_price: float,
        stop_loss: float,
        take_profit: Optional[float] = None,
        trade_id: Optional[str] = None,
        alert_message: Optional[str] = None,
    ) -> LedgerEvent:
        """Open a new trade sized from the strategy's current equity.

        Equity is untouched until the trade closes.

        Raises:
            UnknownSymbolError: *symbol* is not tracked.
            DuplicateTradeError: *trade_id* is already in the ledger.
            OpenTradeExistsError: ``single`` policy and a trade is open.
            ValueError: *side* is not ``"buy"`` or ``"sell"``.
        """
        if side not in TRADE_SIDES:
            raise ValueError(f"side must be 'buy' or 'sell', got {side!r}")

        state, lock = self._resolve(symbol)
        with lock:
            if trade_id is not None and self._find(state, trade_id) is not None:
                raise DuplicateTradeError(state.symbol, trade_id)
            if self._policy == "single":
                current = next((t for t in state.trades if t.is_open), None)
                if current is not None:
                    raise OpenTradeExistsError(state.symbol, current.id)

            sizing = position_size(
                state.current_equity, entry_price, stop_loss, self._risk_fraction,
            )
            if sizing.degenerate:
                logger.warning(
                    "%s entry at %s has stop on entry price — recording zero-size trade.",
                    state.symbol, entry_price,
                )

            trade = Trade(
                id=trade_id if trade_id is not None else self._new_id(state),
                symbol=state.symbol,
                strategy_name=state.strategy_name,
                side=side,
                entry_price=entry_price,
                stop_loss=stop_loss,
                take_profit=take_profit,
                position_size=sizing.size,
                risk_amount=sizing.risk_amount,
                entry_time=self._clock(),
                alert_message=alert_message,
            )
            state.trades.append(trade)

            logger.info(
                "%s %s opened %s @ %s (SL %s, size %.6f, risk $%.2f)",
                state.symbol, trade.id, side, entry_price, stop_loss,
                sizing.size, sizing.risk_amount,
            )
            return LedgerEvent(
                kind="entry",
                symbol=state.symbol,
                trade=copy.copy(trade),
                notification=entry_notification(
                    trade,
                    title=self._title,
                    target_url=self._target_url,
                    risk_pct=self._risk_fraction * 100,
                ),
                degenerate_stop=sizing.degenerate,
            )

    def apply_exit(
        self,
        symbol: str,
        exit_price: Optional[float] = None,
        trade_id: Optional[str] = None,
        alert_message: Optional[str] = None,
    ) -> LedgerEvent:
        """Close an open trade and realise its P&L into equity.

        Without *trade_id* the oldest open trade is closed.  Without
        *exit_price* the trade closes at its own entry price (zero P&L).
        A symbol with nothing to close yields a ``no_open_trade`` event
        and no state change.

        Raises:
            UnknownSymbolError: *symbol* is not tracked.
        """
        state, lock = self._resolve(symbol)
        with lock:
            trade = self._select_open(state, trade_id)
            if trade is None:
                logger.info(
                    "%s exit ignored — no open trade%s.",
                    state.symbol, f" with id {trade_id}" if trade_id else "",
                )
                return LedgerEvent(kind="no_open_trade", symbol=state.symbol)

            fallback = exit_price is None
            if fallback:
                exit_price = trade.entry_price
                logger.warning(
                    "%s %s exit without price — closing at entry price %s (zero PnL).",
                    state.symbol, trade.id, exit_price,
                )

            now = self._clock()
            pnl = calculate_pnl(trade.side, trade.entry_price, exit_price, trade.position_size)
            trade.status = STATUS_CLOSED
            trade.exit_price = exit_price
            trade.exit_time = now
            trade.pnl = pnl

            state.current_equity += pnl
            dd = update_drawdown(state.current_equity, state.peak_equity, state.max_drawdown)
            state.peak_equity = dd.peak
            state.max_drawdown = dd.max_drawdown

            point = EquityPoint(now, state.current_equity)
            self._recorder.append(state.symbol, point)

            logger.info(
                "%s %s closed @ %s, PnL $%.2f → equity $%.2f (max DD %.2f%%)",
                state.symbol, trade.id, exit_price, pnl,
                state.current_equity, state.max_drawdown,
            )
            return LedgerEvent(
                kind="exit",
                symbol=state.symbol,
                trade=copy.copy(trade),
                notification=exit_notification(
                    trade,
                    title=self._title,
                    target_url=self._target_url,
                    alert_message=alert_message,
                ),
                equity_point=point,
                exit_price_fallback=fallback,
            )

    # ── Queries ──────────────────────────────────────────────────────────

    def get_strategy(self, symbol: str) -> StrategyState:
        """Return the live state for *symbol* (do not mutate)."""
        state, _ = self._resolve(symbol)
        return state

    def checkpoint(self, symbol: str) -> StrategyState:
        """Independent deep copy of *symbol*'s state, taken under its lock.

        Pass it back to :meth:`restore` to undo later commands.
        """
        state, lock = self._resolve(symbol)
        with lock:
            return copy.deepcopy(state)

    def summary(self, symbol: str) -> dict:
        state, lock = self._resolve(symbol)
        with lock:
            return state.summary()

    def snapshot(self, symbol: str) -> dict:
        """JSON-ready copy of *symbol*'s full state."""
        state, lock = self._resolve(symbol)
        with lock:
            return state.to_dict()

    def trades(self, symbol: str, status: Optional[str] = None) -> list[Trade]:
        """Trades for *symbol* in entry order, optionally filtered by status."""
        state, lock = self._resolve(symbol)
        with lock:
            return [
                copy.copy(t) for t in state.trades
                if status is None or t.status == status.upper()
            ]

    def open_trades(self, symbol: str) -> list[Trade]:
        return self.trades(symbol, status="OPEN")

    def reconcile(self, symbol: str, tolerance: float = 1e-6) -> bool:
        """``True`` when equity equals initial balance plus closed P&L.

        The last point on the equity curve must match current equity too.
        """
        state, lock = self._resolve(symbol)
        with lock:
            realised = math.fsum(t.pnl for t in state.trades if not t.is_open)
            expected = state.initial_balance + realised
            latest = self._recorder.latest(state.symbol)
            return math.isclose(
                state.current_equity, expected, rel_tol=tolerance, abs_tol=tolerance,
            ) and (
                latest is None
                or math.isclose(
                    latest.balance, state.current_equity,
                    rel_tol=tolerance, abs_tol=tolerance,
                )
            )

    # ── Lifecycle ────────────────────────────────────────────────────────

    def restore(self, state: StrategyState) -> None:
        """Install *state* for its symbol, replacing any existing ledger.

        Used at startup to load persisted state and to roll back to a
        :meth:`checkpoint`.  A state without equity points gets a seed
        point at its current equity.
        """
        symbol = state.symbol.upper()
        lock = self._locks.setdefault(symbol, threading.Lock())
        with lock:
            if state.equity_curve:
                self._recorder.attach(symbol, state.equity_curve)
            else:
                seed = self._recorder.start(symbol, self._clock(), state.current_equity)
                state.equity_curve.append(seed)
                self._recorder.attach(symbol, state.equity_curve)
            self._strategies[symbol] = state

    # ── Helpers ──────────────────────────────────────────────────────────

    def _resolve(self, symbol: str) -> tuple[StrategyState, threading.Lock]:
        key = symbol.upper() if isinstance(symbol, str) else symbol
        state = self._strategies.get(key)
        if state is None:
            raise UnknownSymbolError(symbol)
        return state, self._locks[key]

    @staticmethod
    def _find(state: StrategyState, trade_id: str) -> Optional[Trade]:
        return next((t for t in state.trades if t.id == trade_id), None)

    @staticmethod
    def _select_open(state: StrategyState, trade_id: Optional[str]) -> Optional[Trade]:
        for trade in state.trades:
            if not trade.is_open:
                continue
            if trade_id is None or trade.id == trade_id:
                return trade
        return None

    def _new_id(self, state: StrategyState) -> str:
        base = self._id_factory()
        candidate = base
        n = 1
        while self._find(state, candidate) is not None:
            candidate = f"{base}_{n}"
            n += 1
        return candidate
