"""Inbound signal schemas — a tagged union on ``event``.

Payloads come from alerting tools as loose JSON.  These models pin down
which fields each event needs before anything reaches the ledger.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


_FinitePrice = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class _SignalBase(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    symbol: str = Field(min_length=1)
    trade_id: Optional[str] = None
    alert_message: Optional[str] = None

    @field_validator("symbol")
    @classmethod
    def _upper_symbol(cls, v: str) -> str:
        return v.upper()

    @field_validator("trade_id", "alert_message")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        return v

    @field_validator("trade_id", mode="before")
    @classmethod
    def _coerce_trade_id(cls, v):
        # Alert templates often send numeric ids.
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class EntrySignal(_SignalBase):
    """An entry alert: open a new trade."""

    event: Literal["entry"]
    side: Literal["buy", "sell"]
    entry_price: _FinitePrice
    stop_loss: _FinitePrice
    take_profit: Optional[_FinitePrice] = None

    @field_validator("side", mode="before")
    @classmethod
    def _lower_side(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class ExitSignal(_SignalBase):
    """An exit alert: close the matching open trade."""

    event: Literal["exit"]
    exit_price: Optional[_FinitePrice] = None
    # Publishers that omit exit_price usually still send the alert price here.
    entry_price: Optional[_FinitePrice] = None


Signal = Annotated[Union[EntrySignal, ExitSignal], Field(discriminator="event")]

signal_adapter: TypeAdapter[Union[EntrySignal, ExitSignal]] = TypeAdapter(Signal)
