"""Error taxonomy for the ledger and the signal gateway.

An exit for a flat symbol and an entry with its stop on the entry price
are not errors; they come back as flagged ``LedgerEvent`` results.
"""


class TradeGuardError(Exception):
    """Base class for every error raised by the ledger core."""


class InvalidPayloadError(TradeGuardError):
    """A signal payload failed validation before reaching the ledger.

    Args:
        message: Human-readable summary.
        errors: One entry per failed field, ``{"field": ..., "message": ...}``.
    """

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors: list[dict] = errors or []


class UnknownSymbolError(TradeGuardError):
    """The symbol is not tracked by the ledger."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Unknown symbol: {symbol}")
        self.symbol = symbol


class DuplicateTradeError(TradeGuardError):
    """An entry reused a trade id already recorded for the symbol."""

    def __init__(self, symbol: str, trade_id: str) -> None:
        super().__init__(f"Trade {trade_id} already exists for {symbol}")
        self.symbol = symbol
        self.trade_id = trade_id


class OpenTradeExistsError(TradeGuardError):
    """Entry rejected because the symbol already has an open trade."""

    def __init__(self, symbol: str, trade_id: str) -> None:
        super().__init__(
            f"{symbol} already has open trade {trade_id}; "
            "close it before entering again"
        )
        self.symbol = symbol
        self.trade_id = trade_id
