"""Position sizing — pure math, no I/O.

Calculates the number of units to trade from account equity, a fixed risk
fraction, and the distance between entry and stop-loss.
"""

from typing import NamedTuple


class PositionSize(NamedTuple):
    """Sizing result for one entry."""

    size: float
    risk_amount: float

    @property
    def degenerate(self) -> bool:
        """``True`` when the stop sat on the entry and nothing was sized."""
        return self.size == 0.0 and self.risk_amount == 0.0


def position_size(
    equity: float,
    entry_price: float,
    stop_loss: float,
    risk_fraction: float = 0.01,
) -> PositionSize:
    """Calculate position size in units.

    Formula::

        risk_amount = equity × risk_fraction
        distance    = |entry_price − stop_loss|
        size        = risk_amount / distance

    A zero stop distance cannot be sized; it returns ``(0, 0)`` instead of
    dividing by zero, and the caller records a zero-risk trade.

    Args:
        equity: Current strategy equity (e.g. 2_400.0).
        entry_price: Signal entry price.
        stop_loss: Signal stop-loss price.
        risk_fraction: Fraction of equity to risk (0.01 for 1 %).

    Returns:
        ``PositionSize(size, risk_amount)``.
    """
    distance = abs(entry_price - stop_loss)
    if distance == 0:
        return PositionSize(0.0, 0.0)

    risk_amount = equity * risk_fraction
    return PositionSize(risk_amount / distance, risk_amount)
