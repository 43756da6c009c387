"""TradeGuard — application entry point.

Boots the FastAPI webhook server and provides the CLI entry point for the
``serve`` and ``replay`` modes.
"""

import json
import logging
import pathlib

from fastapi import FastAPI

from tradeguard.api.routers import router

app = FastAPI(title="TradeGuard Signal Ledger", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("tradeguard")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse

    from tradeguard.config import load_config, load_strategies

    parser = argparse.ArgumentParser(description="TradeGuard signal ledger")
    parser.add_argument(
        "--strategies",
        help="Path to tradeguard.json (default: ./tradeguard.json or built-ins)",
    )
    sub = parser.add_subparsers(dest="mode")
    serve = sub.add_parser("serve", help="Run the webhook API (default)")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, help="Override API_PORT")
    replay = sub.add_parser("replay", help="Feed a JSON-lines signal file through an in-memory ledger")
    replay.add_argument("file", help="File with one signal payload per line")
    args = parser.parse_args(argv)

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    strategies = load_strategies(args.strategies)

    if args.mode == "replay":
        _run_replay(config, strategies, pathlib.Path(args.file))
    else:
        _run_server(
            config,
            strategies,
            host=getattr(args, "host", "0.0.0.0"),
            port=getattr(args, "port", None) or config.api_port,
        )


def _run_server(config, strategies, host: str, port: int) -> None:
    """Load the persisted ledger and serve the API until interrupted."""
    import uvicorn

    from tradeguard.api.routers import configure_routers
    from tradeguard.service import build_service

    service = build_service(config, strategies)
    service.load()
    configure_routers(service)

    logger.info(
        "Starting TradeGuard on %s:%d for %d strateg%s (risk %.2f%%, policy %s).",
        host, port, len(strategies), "y" if len(strategies) == 1 else "ies",
        config.risk_per_trade_pct, config.open_trade_policy,
    )
    uvi_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=config.log_level.lower(),
    )
    server = uvicorn.Server(uvi_config)
    try:
        server.run()
    finally:
        service.close()


def _run_replay(config, strategies, path: pathlib.Path) -> dict:
    """Replay recorded signals and print a summary per strategy.

    Lines that fail validation are logged and skipped.

    Returns:
        ``{"applied": int, "ignored": int, "rejected": int}``.
    """
    from tradeguard.cli.dashboard import print_summary
    from tradeguard.errors import TradeGuardError
    from tradeguard.service import build_service

    service = build_service(config, strategies, persist=False)
    service.load()

    counts = {"applied": 0, "ignored": 0, "rejected": 0}
    with path.open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                event = service.handle_signal(json.loads(line))
            except (json.JSONDecodeError, TradeGuardError) as exc:
                logger.warning("Line %d rejected: %s", lineno, exc)
                counts["rejected"] += 1
                continue
            counts["applied" if event.changed else "ignored"] += 1

    for summary in service.list_strategies():
        print_summary(summary, service.stats(summary["symbol"]))
    logger.info(
        "Replay complete: %d applied, %d ignored, %d rejected.",
        counts["applied"], counts["ignored"], counts["rejected"],
    )
    return counts


if __name__ == "__main__":
    _run_cli()
