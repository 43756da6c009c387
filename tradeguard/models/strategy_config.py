"""Strategy configuration dataclass.

Represents one tracked symbol in the ledger.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StrategyConfig:
    """Configuration for a single simulated strategy.

    Each strategy owns exactly one symbol, its starting balance, and a
    display name carried onto every trade it records.
    """

    symbol: str  # e.g. "BTCUSD"
    strategy_name: str
    initial_balance: float
    enabled: bool = True


DEFAULT_STRATEGIES: tuple[StrategyConfig, ...] = (
    StrategyConfig(symbol="BTCUSD", strategy_name="Strategy_BTC", initial_balance=2400.0),
    StrategyConfig(symbol="XAUUSD", strategy_name="Strategy_XAU", initial_balance=2900.0),
)
