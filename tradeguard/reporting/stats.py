"""Strategy statistics — pure functions over a strategy's ledger."""

from typing import Optional

from tradeguard.ledger.models import StrategyState
from tradeguard.risk.drawdown import drawdown_pct


def calculate_stats(state: StrategyState) -> dict:
    """Compute a performance summary for one strategy.

    Win rate counts closed trades only; a trade closed flat is neither a
    win nor a loss.

    Returns:
        ``total_trades``, ``open_trades``, ``closed_trades``,
        ``winning_trades``, ``losing_trades``, ``win_rate`` (percent),
        ``profit_factor``, ``net_pnl``, ``return_pct``, ``max_drawdown``,
        ``current_drawdown``, ``average_win``, ``average_loss``.
    """
    closed = [t for t in state.trades if not t.is_open]
    pnls = [t.pnl for t in closed]
    winners = [p for p in pnls if p > 0]
    losers = [p for p in pnls if p < 0]

    gross_profit = sum(winners)
    gross_loss = abs(sum(losers))
    profit_factor: Optional[float] = (
        gross_profit / gross_loss if gross_loss > 0 else None
    )

    net_pnl = state.current_equity - state.initial_balance
    return_pct = (
        net_pnl / state.initial_balance * 100.0 if state.initial_balance else 0.0
    )

    return {
        "total_trades": len(state.trades),
        "open_trades": len(state.trades) - len(closed),
        "closed_trades": len(closed),
        "winning_trades": len(winners),
        "losing_trades": len(losers),
        "win_rate": round(len(winners) / len(closed) * 100.0, 2) if closed else 0.0,
        "profit_factor": round(profit_factor, 4) if profit_factor is not None else None,
        "net_pnl": round(net_pnl, 2),
        "return_pct": round(return_pct, 4),
        "max_drawdown": round(state.max_drawdown, 4),
        "current_drawdown": round(
            drawdown_pct(state.current_equity, state.peak_equity), 4
        ),
        "average_win": round(gross_profit / len(winners), 2) if winners else 0.0,
        "average_loss": round(-gross_loss / len(losers), 2) if losers else 0.0,
    }
