"""Notification descriptors — what to push, never how.

The ledger builds one descriptor per entry or exit; delivery to subscribed
devices belongs to an outside collaborator.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from tradeguard.ledger.models import Trade


DEFAULT_TITLE = "TradeGuard Strategy Signal"


@dataclass(frozen=True)
class Notification:
    """Push-notification content for a delivery collaborator."""

    title: str
    body: str
    target_url: str = "/"
    symbol: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "body": self.body,
            "target_url": self.target_url,
            "symbol": self.symbol,
        }


def _fmt_price(value: Optional[float]) -> str:
    return f"{value:g}" if value is not None else "-"


def entry_notification(
    trade: "Trade",
    title: str = DEFAULT_TITLE,
    target_url: str = "/",
    risk_pct: float = 1.0,
) -> Notification:
    """Describe a newly opened trade.

    The publisher's ``alert_message`` wins when present; otherwise a
    standard signal card is rendered.
    """
    if trade.alert_message:
        body = trade.alert_message
    else:
        body = "\n".join([
            trade.side.upper(),
            f"PAIR {trade.symbol}",
            f"ENTRY : {_fmt_price(trade.entry_price)}",
            f"STOP LOSS : {_fmt_price(trade.stop_loss)}",
            f"TAKE PROFIT : {_fmt_price(trade.take_profit)}",
            "",
            f"Keep risk at {risk_pct:g}% per trade and mind your money management",
        ])
    return Notification(title=title, body=body, target_url=target_url, symbol=trade.symbol)


def exit_notification(
    trade: "Trade",
    title: str = DEFAULT_TITLE,
    target_url: str = "/",
    alert_message: Optional[str] = None,
) -> Notification:
    """Describe a closed trade, always including its realised P&L."""
    lines = [
        f"Trade Closed. PnL: ${trade.pnl:,.2f}",
        f"PAIR {trade.symbol}",
        f"ENTRY : {_fmt_price(trade.entry_price)}",
        f"EXIT : {_fmt_price(trade.exit_price)}",
    ]
    if alert_message:
        lines += ["", alert_message]
    return Notification(
        title=title, body="\n".join(lines), target_url=target_url, symbol=trade.symbol,
    )
