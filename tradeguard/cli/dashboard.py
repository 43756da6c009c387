"""CLI dashboard — prints a strategy summary to the console."""


def print_summary(strategy: dict, stats: dict) -> str:
    """Format and print one strategy's ledger summary.

    Args:
        strategy: ``StrategyState.summary()`` dict.
        stats: ``calculate_stats()`` dict for the same strategy.

    Returns:
        The formatted string (also printed to stdout).
    """
    symbol = strategy.get("symbol", "N/A")
    name = strategy.get("strategy_name", "N/A")
    equity = strategy.get("current_equity")
    start = strategy.get("initial_balance")
    peak = strategy.get("peak_equity")

    equity_str = f"${equity:,.2f}" if equity is not None else "N/A"
    start_str = f"${start:,.2f}" if start is not None else "N/A"
    peak_str = f"${peak:,.2f}" if peak is not None else "N/A"
    pf = stats.get("profit_factor")
    pf_str = f"{pf:.2f}" if pf is not None else "N/A"

    lines = [
        f"──────────────── {symbol} ({name}) ────────────────",
        f"  Equity:          {equity_str}",
        f"  Start:           {start_str}",
        f"  Peak:            {peak_str}",
        f"  Net PnL:         ${stats.get('net_pnl', 0.0):,.2f}",
        f"  Max Drawdown:    {stats.get('max_drawdown', 0.0):.2f}%",
        f"  Trades:          {stats.get('total_trades', 0)} "
        f"({stats.get('open_trades', 0)} open)",
        f"  Win Rate:        {stats.get('win_rate', 0.0):.1f}%",
        f"  Profit Factor:   {pf_str}",
        "──────────────────────────────────────────────────",
    ]
    output = "\n".join(lines)
    print(output)
    return output
