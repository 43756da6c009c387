"""LedgerService — owns the ledger and wires its collaborators.

One explicit ``LedgerEngine`` instance per service.  Each inbound signal
is validated by the ``SignalGateway``, applied to the engine, written to
the ``LedgerStore`` and its notification kept in a bounded feed for
delivery.
"""

import logging
import threading
from collections import deque
from typing import Optional

from tradeguard.config import Config
from tradeguard.gateway.signal_gateway import SignalGateway
from tradeguard.ledger.engine import LedgerEngine
from tradeguard.ledger.equity_curve import EquityCurveRecorder
from tradeguard.ledger.models import LedgerEvent
from tradeguard.models.strategy_config import StrategyConfig
from tradeguard.reporting.stats import calculate_stats
from tradeguard.repos.store import LedgerStore

logger = logging.getLogger("tradeguard.service")

NOTIFICATION_FEED_SIZE = 50


class LedgerService:
    """Signal handling and read access for a set of strategies.

    Args:
        engine: The ledger this service owns.
        gateway: Validator for inbound payloads.
        store: Persistence collaborator, or ``None`` to run in memory.
        strategies: Configs used to load persisted state in :meth:`load`.
    """

    def __init__(
        self,
        engine: LedgerEngine,
        gateway: SignalGateway,
        store: Optional[LedgerStore] = None,
        strategies: Optional[list[StrategyConfig]] = None,
    ) -> None:
        self._engine = engine
        self._gateway = gateway
        self._store = store
        self._strategies = list(strategies or [])
        self._notifications: deque[dict] = deque(maxlen=NOTIFICATION_FEED_SIZE)
        # Apply and persist as one step so rows land in ledger order.
        self._write_locks = {s: threading.Lock() for s in engine.symbols}

    # ── Lifecycle ────────────────────────────────────────────────────────

    def load(self) -> None:
        """Restore every strategy from the store.  Call once at startup."""
        if self._store is not None:
            for cfg in self._strategies:
                self._engine.restore(self._store.load_strategy(cfg))
            configured = set(self._engine.symbols)
            for row in self._store.strategies.get_all():
                if row["symbol"] not in configured:
                    logger.warning(
                        "Persisted strategy %s is not configured; its ledger stays on disk.",
                        row["symbol"],
                    )
        logger.info("Ledger ready for %s.", ", ".join(self._engine.symbols))

    def close(self) -> None:
        """Final sync of every strategy row."""
        if self._store is not None:
            for symbol in self._engine.symbols:
                self._store.strategies.upsert(self._engine.checkpoint(symbol))
        logger.info("Ledger closed.")

    @property
    def engine(self) -> LedgerEngine:
        return self._engine

    # ── Signals ──────────────────────────────────────────────────────────

    def handle_signal(self, payload: object) -> LedgerEvent:
        """Validate, apply and persist one signal.

        Raises:
            InvalidPayloadError, UnknownSymbolError, DuplicateTradeError,
            OpenTradeExistsError: Nothing was changed.
            sqlite3.Error: Persisting failed; the ledger was rolled back
                and the signal can be retried.
        """
        command = self._gateway.parse(payload)
        with self._write_locks[command.symbol]:
            if self._store is None:
                event = self._gateway.apply(command, self._engine)
            else:
                event = self._apply_and_save(command)

        if event.notification is not None:
            self._notifications.append(event.notification.to_dict())
        return event

    def _apply_and_save(self, command) -> LedgerEvent:
        before = self._engine.checkpoint(command.symbol)
        event = self._gateway.apply(command, self._engine)
        if not event.changed:
            return event
        try:
            self._store.save_event(event, self._engine.get_strategy(event.symbol))
        except Exception:
            self._engine.restore(before)
            logger.exception(
                "%s %s not persisted; ledger rolled back.", event.symbol, event.kind,
            )
            raise
        return event

    # ── Queries ──────────────────────────────────────────────────────────

    def list_strategies(self) -> list[dict]:
        return [self._engine.summary(s) for s in self._engine.symbols]

    def strategy(self, symbol: str) -> dict:
        return self._engine.snapshot(symbol)

    def stats(self, symbol: str) -> dict:
        return calculate_stats(self._engine.checkpoint(symbol))

    def notifications(self, limit: int = 20) -> list[dict]:
        """Most recent notification descriptors, newest first."""
        recent = list(self._notifications)[-limit:]
        recent.reverse()
        return recent


def build_service(
    config: Config,
    strategies: list[StrategyConfig],
    persist: bool = True,
) -> LedgerService:
    """Construct a service from configuration.

    Args:
        persist: ``False`` keeps everything in memory (replays, tests).
    """
    engine = LedgerEngine(
        strategies,
        risk_fraction=config.risk_fraction,
        recorder=EquityCurveRecorder(),
        open_trade_policy=config.open_trade_policy,
        notification_title=config.notification_title,
        target_url=config.dashboard_url,
    )
    gateway = SignalGateway(
        engine.symbols,
        allow_exit_price_fallback=config.allow_exit_price_fallback,
    )
    store = LedgerStore(config.db_path) if persist else None
    return LedgerService(engine, gateway, store=store, strategies=strategies)
