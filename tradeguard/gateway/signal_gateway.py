"""Signal gateway — validates inbound payloads and turns them into commands.

Rejections happen here, before the ledger is touched, so a bad payload
can never leave a half-applied trade behind.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Union

from pydantic import ValidationError

from tradeguard.errors import InvalidPayloadError
from tradeguard.gateway.schemas import EntrySignal, ExitSignal, signal_adapter
from tradeguard.ledger.engine import LedgerEngine
from tradeguard.ledger.models import LedgerEvent

logger = logging.getLogger("tradeguard.gateway")


@dataclass(frozen=True)
class EntryCommand:
    """Open a trade on ``symbol``."""

    symbol: str
    side: str
    entry_price: float
    stop_loss: float
    take_profit: Optional[float] = None
    trade_id: Optional[str] = None
    alert_message: Optional[str] = None


@dataclass(frozen=True)
class ExitCommand:
    """Close a trade on ``symbol``.

    ``exit_price`` is ``None`` only when the publisher sent no price at all;
    the ledger then closes at the trade's own entry price.
    """

    symbol: str
    exit_price: Optional[float] = None
    trade_id: Optional[str] = None
    alert_message: Optional[str] = None
    price_fallback: bool = False


Command = Union[EntryCommand, ExitCommand]


def _format_errors(exc: ValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("entry", "exit"))
        errors.append({"field": loc or "payload", "message": err.get("msg", "invalid")})
    return errors


class SignalGateway:
    """Validates signal payloads for a fixed set of symbols.

    Args:
        symbols: Symbols the ledger tracks.
        allow_exit_price_fallback: When ``False``, an exit without
            ``exit_price`` is rejected instead of closing at entry price.
    """

    def __init__(
        self,
        symbols: Iterable[str],
        allow_exit_price_fallback: bool = True,
    ) -> None:
        self._symbols = frozenset(s.upper() for s in symbols)
        self._allow_fallback = allow_exit_price_fallback

    @property
    def symbols(self) -> frozenset[str]:
        return self._symbols

    def parse(self, payload: object) -> Command:
        """Validate *payload* and return the matching command.

        Raises:
            InvalidPayloadError: With one entry per failing field.
        """
        if not isinstance(payload, dict):
            raise InvalidPayloadError(
                "Payload must be a JSON object",
                [{"field": "payload", "message": f"expected object, got {type(payload).__name__}"}],
            )

        try:
            signal = signal_adapter.validate_python(payload)
        except ValidationError as exc:
            errors = _format_errors(exc)
            raise InvalidPayloadError(
                f"Invalid signal payload: {errors[0]['field']}: {errors[0]['message']}",
                errors,
            ) from exc

        if signal.symbol not in self._symbols:
            raise InvalidPayloadError(
                f"Unrecognised symbol: {signal.symbol}",
                [{
                    "field": "symbol",
                    "message": f"must be one of {', '.join(sorted(self._symbols))}",
                }],
            )

        if isinstance(signal, EntrySignal):
            return EntryCommand(
                symbol=signal.symbol,
                side=signal.side,
                entry_price=signal.entry_price,
                stop_loss=signal.stop_loss,
                take_profit=signal.take_profit,
                trade_id=signal.trade_id,
                alert_message=signal.alert_message,
            )
        return self._exit_command(signal)

    def _exit_command(self, signal: ExitSignal) -> ExitCommand:
        exit_price = signal.exit_price
        fallback = exit_price is None
        if fallback:
            if not self._allow_fallback:
                raise InvalidPayloadError(
                    "Exit signal is missing exit_price",
                    [{"field": "exit_price", "message": "Field required"}],
                )
            exit_price = signal.entry_price
            logger.warning(
                "%s exit arrived without exit_price — falling back to %s.",
                signal.symbol,
                "payload entry_price" if exit_price is not None else "trade entry price",
            )
        return ExitCommand(
            symbol=signal.symbol,
            exit_price=exit_price,
            trade_id=signal.trade_id,
            alert_message=signal.alert_message,
            price_fallback=fallback,
        )

    def handle(self, payload: object, engine: LedgerEngine) -> LedgerEvent:
        """Parse *payload* and apply it to *engine*."""
        return self.apply(self.parse(payload), engine)

    @staticmethod
    def apply(command: Command, engine: LedgerEngine) -> LedgerEvent:
        """Hand an already validated *command* to *engine*."""
        if isinstance(command, EntryCommand):
            return engine.apply_entry(
                command.symbol,
                command.side,
                command.entry_price,
                command.stop_loss,
                take_profit=command.take_profit,
                trade_id=command.trade_id,
                alert_message=command.alert_message,
            )
        event = engine.apply_exit(
            command.symbol,
            exit_price=command.exit_price,
            trade_id=command.trade_id,
            alert_message=command.alert_message,
        )
        if command.price_fallback and event.kind == "exit" and not event.exit_price_fallback:
            # The gateway substituted the payload's entry_price.
            event = replace(event, exit_price_fallback=True)
        return event
