"""Shared fixtures for the ledger tests."""

from datetime import datetime, timedelta, timezone

import pytest

from tradeguard.config import Config
from tradeguard.models.strategy_config import StrategyConfig


START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class StepClock:
    """Returns START, START+1m, START+2m, ... on successive calls."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(minutes=1)):
        self._now = start - step
        self._step = step

    def __call__(self) -> datetime:
        self._now += self._step
        return self._now


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def strategies():
    return [
        StrategyConfig(symbol="BTCUSD", strategy_name="Strategy_BTC", initial_balance=2_400.0),
        StrategyConfig(symbol="XAUUSD", strategy_name="Strategy_XAU", initial_balance=2_900.0),
    ]


def make_config(**overrides) -> Config:
    defaults = dict(
        risk_per_trade_pct=1.0,
        open_trade_policy="fifo",
        allow_exit_price_fallback=True,
        db_path=":memory:",
        log_level="WARNING",
        api_port=8080,
        dashboard_url="/",
        notification_title="TradeGuard Strategy Signal",
    )
    defaults.update(overrides)
    return Config(**defaults)


def entry_payload(**overrides) -> dict:
    payload = {
        "symbol": "BTCUSD",
        "strategy_name": "Strategy_BTC",
        "event": "entry",
        "side": "buy",
        "entry_price": 42_000,
        "stop_loss": 41_500,
        "take_profit": 43_500,
        "trade_id": "trade_0001",
        "timestamp": "2025-01-01T12:00:00Z",
    }
    payload.update(overrides)
    return payload


def exit_payload(**overrides) -> dict:
    payload = {
        "symbol": "BTCUSD",
        "event": "exit",
        "exit_price": 42_500,
    }
    payload.update(overrides)
    return payload
