"""API routers — /webhook, /strategies, /notifications endpoints.

No business logic, no DB access. Delegates to the ``LedgerService``.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse

from tradeguard.errors import (
    DuplicateTradeError,
    InvalidPayloadError,
    OpenTradeExistsError,
    UnknownSymbolError,
)

logger = logging.getLogger("tradeguard.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_service = None  # Set via configure_routers()


def configure_routers(service) -> None:
    """Inject the ``LedgerService`` (or a duck-type for tests)."""
    global _service  # noqa: PLW0603
    _service = service


def _unavailable() -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": "Ledger not configured"})


def _unknown(symbol: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": f"Unknown symbol: {symbol}"})


# ── Webhook ──────────────────────────────────────────────────────────────


@router.post("/webhook")
async def receive_signal(payload: dict = Body(...)):
    """Apply one entry or exit signal from an alerting tool."""
    if _service is None:
        return _unavailable()
    try:
        event = _service.handle_signal(payload)
    except InvalidPayloadError as exc:
        logger.info("Rejected signal: %s", exc)
        return JSONResponse(
            status_code=422, content={"error": str(exc), "details": exc.errors},
        )
    except UnknownSymbolError as exc:
        return JSONResponse(status_code=404, content={"error": str(exc)})
    except (DuplicateTradeError, OpenTradeExistsError) as exc:
        logger.info("Rejected signal: %s", exc)
        return JSONResponse(status_code=409, content={"error": str(exc)})

    if event.kind == "no_open_trade":
        return {
            "status": "ignored",
            "message": "No open trade found to close",
            "symbol": event.symbol,
        }

    body = {
        "status": "ok",
        "message": "Entry recorded" if event.kind == "entry" else "Exit recorded",
        **event.to_dict(),
    }
    if event.kind == "entry":
        body["size"] = event.trade.position_size
    else:
        body["pnl"] = event.trade.pnl
    return body


# ── Queries ──────────────────────────────────────────────────────────────


@router.get("/strategies")
async def get_strategies():
    """Return the scalar state of every tracked strategy."""
    if _service is None:
        return {"strategies": []}
    return {"strategies": _service.list_strategies()}


@router.get("/strategies/{symbol}")
async def get_strategy(symbol: str):
    """Return one strategy with its trades and equity curve."""
    if _service is None:
        return _unavailable()
    try:
        return _service.strategy(symbol)
    except UnknownSymbolError:
        return _unknown(symbol)


@router.get("/strategies/{symbol}/trades")
async def get_trades(
    symbol: str,
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
):
    """Return the most recent trades for *symbol*, newest first."""
    if _service is None:
        return _unavailable()
    if status is not None and status.upper() not in ("OPEN", "CLOSED"):
        return JSONResponse(
            status_code=422, content={"error": "status must be open or closed"},
        )
    try:
        trades = _service.engine.trades(symbol, status=status)
    except UnknownSymbolError:
        return _unknown(symbol)
    recent = [t.to_dict() for t in trades[-limit:]]
    recent.reverse()
    return {"trades": recent, "total": len(trades)}


@router.get("/strategies/{symbol}/equity-curve")
async def get_equity_curve(
    symbol: str,
    since: Optional[datetime] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=10_000),
):
    """Return the equity curve, optionally only a recent suffix."""
    if _service is None:
        return _unavailable()
    try:
        _service.engine.get_strategy(symbol)
    except UnknownSymbolError:
        return _unknown(symbol)
    if since is not None and since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    points = _service.engine.recorder.points(symbol.upper(), since=since, limit=limit)
    return {"symbol": symbol.upper(), "points": [p.to_dict() for p in points]}


@router.get("/strategies/{symbol}/stats")
async def get_stats(symbol: str):
    """Return win rate, P&L and drawdown figures for *symbol*."""
    if _service is None:
        return _unavailable()
    try:
        return {"symbol": symbol.upper(), **_service.stats(symbol)}
    except UnknownSymbolError:
        return _unknown(symbol)


@router.get("/notifications")
async def get_notifications(limit: int = Query(default=20, ge=1, le=50)):
    """Return recent notification descriptors, newest first."""
    if _service is None:
        return {"notifications": []}
    return {"notifications": _service.notifications(limit=limit)}
