"""Drawdown tracking — pure math, no I/O.

Peak equity only ever rises and the maximum drawdown only ever grows;
both are refreshed each time realised equity changes.
"""

from typing import NamedTuple


class DrawdownUpdate(NamedTuple):
    """Refreshed peak and all-time maximum drawdown."""

    peak: float
    max_drawdown: float


def drawdown_pct(current_equity: float, peak_equity: float) -> float:
    """Current drawdown as a percentage of *peak_equity*.

    Returns 0.0 when the peak is zero or negative.
    """
    if peak_equity <= 0:
        return 0.0
    return ((peak_equity - current_equity) / peak_equity) * 100.0


def update_drawdown(
    current_equity: float,
    peak_equity: float,
    prior_max_drawdown: float,
) -> DrawdownUpdate:
    """Fold the latest equity into the peak and maximum drawdown.

    Args:
        current_equity: Equity after the latest realised P&L.
        peak_equity: Highest equity observed so far.
        prior_max_drawdown: Maximum drawdown so far (percent).

    Returns:
        ``DrawdownUpdate(peak, max_drawdown)`` where ``max_drawdown`` is
        never below *prior_max_drawdown*.
    """
    peak = max(peak_equity, current_equity)
    current_dd = drawdown_pct(current_equity, peak)
    return DrawdownUpdate(peak, max(prior_max_drawdown, current_dd))
