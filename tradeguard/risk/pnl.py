"""Realised P&L for a closed trade — pure math, no I/O."""

from tradeguard.ledger.models import TRADE_SIDES


def calculate_pnl(
    side: str,
    entry_price: float,
    exit_price: float,
    size: float,
) -> float:
    """Return the realised profit (negative for a loss).

    ``buy``  → ``(exit − entry) × size``
    ``sell`` → ``(entry − exit) × size``

    Raises:
        ValueError: If *side* is not one of ``TRADE_SIDES``.
    """
    if side not in TRADE_SIDES:
        raise ValueError(f"side must be 'buy' or 'sell', got {side!r}")
    if side == "buy":
        return (exit_price - entry_price) * size
    return (entry_price - exit_price) * size
