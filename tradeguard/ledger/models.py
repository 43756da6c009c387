"""Ledger data models — strategies, trades and equity snapshots."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from tradeguard.models.strategy_config import StrategyConfig
from tradeguard.notifications import Notification


TRADE_SIDES = ("buy", "sell")

STATUS_OPEN = "OPEN"
STATUS_CLOSED = "CLOSED"


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


@dataclass(frozen=True)
class EquityPoint:
    """Realised equity at a point in time."""

    timestamp: datetime
    balance: float

    def to_dict(self) -> dict:
        return {"timestamp": self.timestamp.isoformat(), "balance": self.balance}


@dataclass
class Trade:
    """A simulated trade owned by one strategy.

    Created ``OPEN`` on an entry signal and moved to ``CLOSED`` exactly once
    by the matching exit.  ``pnl`` stays 0 while the trade is open.
    """

    id: str
    symbol: str
    strategy_name: str
    side: str  # "buy" or "sell"
    entry_price: float
    stop_loss: float
    take_profit: Optional[float]
    position_size: float
    risk_amount: float
    entry_time: datetime
    status: str = STATUS_OPEN
    exit_price: Optional[float] = None
    exit_time: Optional[datetime] = None
    pnl: float = 0.0
    alert_message: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == STATUS_OPEN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "strategy_name": self.strategy_name,
            "side": self.side,
            "entry_price": self.entry_price,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "position_size": self.position_size,
            "risk_amount": self.risk_amount,
            "entry_time": _iso(self.entry_time),
            "status": self.status,
            "exit_price": self.exit_price,
            "exit_time": _iso(self.exit_time),
            "pnl": self.pnl,
            "alert_message": self.alert_message,
        }


@dataclass
class StrategyState:
    """Running ledger for one symbol."""

    symbol: str
    strategy_name: str
    initial_balance: float
    current_equity: float
    peak_equity: float
    max_drawdown: float = 0.0  # percent
    trades: list[Trade] = field(default_factory=list)
    equity_curve: list[EquityPoint] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: StrategyConfig, started_at: datetime) -> "StrategyState":
        """Fresh state at the configured balance with one seed equity point."""
        return cls(
            symbol=config.symbol,
            strategy_name=config.strategy_name,
            initial_balance=config.initial_balance,
            current_equity=config.initial_balance,
            peak_equity=config.initial_balance,
            equity_curve=[EquityPoint(started_at, config.initial_balance)],
        )

    def summary(self) -> dict:
        """Scalar fields only, for list views and persistence."""
        return {
            "symbol": self.symbol,
            "strategy_name": self.strategy_name,
            "initial_balance": self.initial_balance,
            "current_equity": self.current_equity,
            "peak_equity": self.peak_equity,
            "max_drawdown": self.max_drawdown,
            "open_trades": sum(1 for t in self.trades if t.is_open),
            "total_trades": len(self.trades),
        }

    def to_dict(self) -> dict:
        return {
            **self.summary(),
            "trades": [t.to_dict() for t in self.trades],
            "equity_curve": [p.to_dict() for p in self.equity_curve],
        }


@dataclass(frozen=True)
class LedgerEvent:
    """Outcome of applying one command to the ledger.

    ``kind`` is ``"entry"``, ``"exit"`` or ``"no_open_trade"``.  The last
    one is a benign result: nothing changed and there is nothing to notify.
    """

    kind: str
    symbol: str
    trade: Optional[Trade] = None
    notification: Optional[Notification] = None
    equity_point: Optional[EquityPoint] = None
    degenerate_stop: bool = False
    exit_price_fallback: bool = False

    @property
    def changed(self) -> bool:
        return self.kind != "no_open_trade"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "symbol": self.symbol,
            "trade": self.trade.to_dict() if self.trade else None,
            "notification": self.notification.to_dict() if self.notification else None,
            "equity_point": self.equity_point.to_dict() if self.equity_point else None,
            "degenerate_stop": self.degenerate_stop,
            "exit_price_fallback": self.exit_price_fallback,
        }
