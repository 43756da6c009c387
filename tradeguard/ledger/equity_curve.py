"""Equity curve recorder — append-only equity snapshots per symbol."""

import threading
from datetime import datetime
from typing import Optional

from tradeguard.ledger.models import EquityPoint


class EquityCurveRecorder:
    """Keeps one append-only list of ``EquityPoint`` per symbol.

    Points are never rewritten or compacted.  The lists handed to
    ``attach`` are shared with the owning ``StrategyState`` so the
    recorder and the strategy always see the same curve.
    """

    def __init__(self) -> None:
        self._curves: dict[str, list[EquityPoint]] = {}
        self._lock = threading.Lock()

    # ── Mutation ─────────────────────────────────────────────────────────

    def attach(self, symbol: str, curve: list[EquityPoint]) -> None:
        """Track *curve* (already holding its seed point) for *symbol*."""
        with self._lock:
            self._curves[symbol] = curve

    def start(self, symbol: str, timestamp: datetime, balance: float) -> EquityPoint:
        """Begin a new curve for *symbol* with its opening balance."""
        point = EquityPoint(timestamp, balance)
        with self._lock:
            self._curves[symbol] = [point]
        return point

    def append(self, symbol: str, point: EquityPoint) -> None:
        """Append *point* to the end of *symbol*'s curve.

        Raises:
            KeyError: If the symbol has no curve yet.
        """
        with self._lock:
            self._curves[symbol].append(point)

    # ── Queries ──────────────────────────────────────────────────────────

    def points(
        self,
        symbol: str,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[EquityPoint]:
        """Return a copy of *symbol*'s curve.

        Args:
            since: Keep only points strictly after this timestamp.
            limit: Keep only the last *limit* points.
        """
        with self._lock:
            curve = list(self._curves.get(symbol, []))
        if since is not None:
            curve = [p for p in curve if p.timestamp > since]
        if limit is not None:
            curve = curve[-limit:] if limit > 0 else []
        return curve

    def latest(self, symbol: str) -> Optional[EquityPoint]:
        """Most recent point, or ``None`` if nothing was recorded."""
        with self._lock:
            curve = self._curves.get(symbol)
            return curve[-1] if curve else None
