"""TradeGuard — application configuration.

Loads .env variables into a typed config object and the tracked
strategies from ``tradeguard.json``.  Validates values on startup.
"""

import json
import os
import pathlib
from dataclasses import dataclass

from dotenv import load_dotenv

from tradeguard.models.strategy_config import DEFAULT_STRATEGIES, StrategyConfig


OPEN_TRADE_POLICIES = ("fifo", "single")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    risk_per_trade_pct: float
    open_trade_policy: str  # "fifo" or "single"
    allow_exit_price_fallback: bool
    db_path: str
    log_level: str
    api_port: int
    dashboard_url: str
    notification_title: str

    @property
    def risk_fraction(self) -> float:
        """Risk per trade as a fraction of equity (1.0 % → 0.01)."""
        return self.risk_per_trade_pct / 100.0


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the offending variable when a
    value is out of range or malformed.
    """
    load_dotenv(dotenv_path=env_path)

    risk_pct = float(os.environ.get("RISK_PER_TRADE_PCT", "1.0"))
    if not 0 < risk_pct <= 100:
        raise ValueError(
            f"RISK_PER_TRADE_PCT must be in (0, 100], got {risk_pct}"
        )

    policy = os.environ.get("OPEN_TRADE_POLICY", "fifo").strip().lower()
    if policy not in OPEN_TRADE_POLICIES:
        raise ValueError(
            f"OPEN_TRADE_POLICY must be one of {', '.join(OPEN_TRADE_POLICIES)}, "
            f"got {policy!r}"
        )

    return Config(
        risk_per_trade_pct=risk_pct,
        open_trade_policy=policy,
        allow_exit_price_fallback=_parse_bool(
            "ALLOW_EXIT_PRICE_FALLBACK",
            os.environ.get("ALLOW_EXIT_PRICE_FALLBACK", "true"),
        ),
        db_path=os.environ.get("DB_PATH", "data/tradeguard.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=int(os.environ.get("API_PORT", "8080")),
        dashboard_url=os.environ.get("DASHBOARD_URL", "/"),
        notification_title=os.environ.get(
            "NOTIFICATION_TITLE", "TradeGuard Strategy Signal"
        ),
    )


def load_strategies(path: str | pathlib.Path | None = None) -> list[StrategyConfig]:
    """Load tracked strategies from ``tradeguard.json``.

    Falls back to the built-in BTCUSD / XAUUSD pair when the file does not
    exist.  Disabled entries are dropped.

    Raises:
        ValueError: On duplicate symbols or a non-positive initial balance.
    """
    if path is None:
        path = pathlib.Path(
            os.environ.get("STRATEGIES_PATH", "tradeguard.json")
        )
    path = pathlib.Path(path)

    if not path.exists():
        return list(DEFAULT_STRATEGIES)

    data = json.loads(path.read_text(encoding="utf-8"))
    strategies: list[StrategyConfig] = []
    seen: set[str] = set()
    for raw in data.get("strategies", []):
        symbol = str(raw["symbol"]).strip().upper()
        balance = float(raw["initial_balance"])
        if balance <= 0:
            raise ValueError(
                f"initial_balance for {symbol} must be positive, got {balance}"
            )
        if symbol in seen:
            raise ValueError(f"Duplicate strategy symbol: {symbol}")
        seen.add(symbol)
        cfg = StrategyConfig(
            symbol=symbol,
            strategy_name=raw.get("strategy_name", f"Strategy_{symbol}"),
            initial_balance=balance,
            enabled=bool(raw.get("enabled", True)),
        )
        if cfg.enabled:
            strategies.append(cfg)
    return strategies
