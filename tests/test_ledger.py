"""Tests for the ledger engine and equity curve recorder.

Covers entry sizing, FIFO exits, equity/drawdown bookkeeping, the
single-open-trade policy, and the benign no-open-trade result.
"""

from datetime import timedelta

import pytest

from conftest import START
from tradeguard.errors import DuplicateTradeError, OpenTradeExistsError, UnknownSymbolError
from tradeguard.ledger.engine import LedgerEngine
from tradeguard.ledger.equity_curve import EquityCurveRecorder
from tradeguard.ledger.models import EquityPoint, StrategyState


# ── Helpers ──────────────────────────────────────────────────────────────


def _engine(strategies, clock, **kwargs) -> LedgerEngine:
    ids = iter(f"auto_{i}" for i in range(1000))
    kwargs.setdefault("id_factory", lambda: next(ids))
    return LedgerEngine(strategies, risk_fraction=0.01, clock=clock, **kwargs)


def _enter(engine, trade_id, symbol="BTCUSD", side="buy", entry=42_000.0, stop=41_500.0):
    return engine.apply_entry(symbol, side, entry, stop, take_profit=43_500.0, trade_id=trade_id)


# ── Entry ────────────────────────────────────────────────────────────────


class TestApplyEntry:
    def test_entry_sizes_from_current_equity(self, strategies, clock):
        engine = _engine(strategies, clock)
        event = _enter(engine, "t1")

        assert event.kind == "entry"
        trade = event.trade
        assert trade.status == "OPEN"
        assert trade.position_size == pytest.approx(0.048)
        assert trade.risk_amount == pytest.approx(24.0)
        assert trade.pnl == 0.0
        assert trade.exit_price is None
        assert trade.strategy_name == "Strategy_BTC"

    def test_entry_does_not_touch_equity(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "t1")
        state = engine.get_strategy("BTCUSD")
        assert state.current_equity == 2_400.0
        assert state.peak_equity == 2_400.0
        assert len(state.equity_curve) == 1

    def test_entry_returns_notification(self, strategies, clock):
        engine = _engine(strategies, clock)
        event = _enter(engine, "t1")
        note = event.notification
        assert note.title == "TradeGuard Strategy Signal"
        assert "BUY" in note.body
        assert "PAIR BTCUSD" in note.body
        assert "42000" in note.body
        assert note.target_url == "/"

    def test_alert_message_used_as_body(self, strategies, clock):
        engine = _engine(strategies, clock)
        event = engine.apply_entry(
            "BTCUSD", "sell", 42_000.0, 42_500.0, alert_message="Short the range top",
        )
        assert event.notification.body == "Short the range top"
        assert event.trade.alert_message == "Short the range top"

    def test_unknown_symbol(self, strategies, clock):
        engine = _engine(strategies, clock)
        with pytest.raises(UnknownSymbolError, match="ETHUSD"):
            _enter(engine, "t1", symbol="ETHUSD")

    def test_symbol_lookup_is_case_insensitive(self, strategies, clock):
        engine = _engine(strategies, clock)
        event = _enter(engine, "t1", symbol="btcusd")
        assert event.symbol == "BTCUSD"

    def test_invalid_side(self, strategies, clock):
        engine = _engine(strategies, clock)
        with pytest.raises(ValueError, match="side"):
            engine.apply_entry("BTCUSD", "long", 42_000.0, 41_500.0)

    def test_duplicate_trade_id_rejected(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "t1")
        with pytest.raises(DuplicateTradeError):
            _enter(engine, "t1")
        assert len(engine.trades("BTCUSD")) == 1

    def test_generated_ids_are_unique(self, strategies, clock):
        engine = _engine(strategies, clock, id_factory=lambda: "t_fixed")
        a = engine.apply_entry("BTCUSD", "buy", 42_000.0, 41_500.0)
        b = engine.apply_entry("BTCUSD", "buy", 42_000.0, 41_500.0)
        assert a.trade.id == "t_fixed"
        assert b.trade.id == "t_fixed_1"

    def test_degenerate_stop_records_zero_size(self, strategies, clock):
        engine = _engine(strategies, clock)
        event = engine.apply_entry("BTCUSD", "buy", 42_000.0, 42_000.0, trade_id="flat")
        assert event.degenerate_stop
        assert event.trade.position_size == 0.0
        assert event.trade.risk_amount == 0.0

        closed = engine.apply_exit("BTCUSD", 45_000.0)
        assert closed.trade.pnl == 0.0
        assert engine.get_strategy("BTCUSD").current_equity == 2_400.0


# ── Exit ─────────────────────────────────────────────────────────────────


class TestApplyExit:
    def test_end_to_end_btc_winner(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "t1")
        event = engine.apply_exit("BTCUSD", 42_500.0)

        assert event.kind == "exit"
        assert event.trade.status == "CLOSED"
        assert event.trade.exit_price == 42_500.0
        assert event.trade.pnl == pytest.approx(24.0)

        state = engine.get_strategy("BTCUSD")
        assert state.current_equity == pytest.approx(2_424.0)
        assert state.peak_equity == pytest.approx(2_424.0)
        assert state.max_drawdown == 0.0
        assert "PnL: $24.00" in event.notification.body

    def test_exit_at_entry_price_is_flat(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "t1")
        event = engine.apply_exit("BTCUSD", 42_000.0)
        assert event.trade.pnl == 0.0
        assert engine.get_strategy("BTCUSD").current_equity == 2_400.0

    def test_losing_exit_updates_drawdown(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "t1")
        engine.apply_exit("BTCUSD", 41_500.0)  # full stop → -24
        state = engine.get_strategy("BTCUSD")
        assert state.current_equity == pytest.approx(2_376.0)
        assert state.peak_equity == 2_400.0
        assert state.max_drawdown == pytest.approx(1.0)

    def test_max_drawdown_survives_recovery(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "t1")
        engine.apply_exit("BTCUSD", 41_500.0)
        _enter(engine, "t2")
        engine.apply_exit("BTCUSD", 44_000.0)
        state = engine.get_strategy("BTCUSD")
        assert state.current_equity > state.initial_balance
        assert state.peak_equity == state.current_equity
        assert state.max_drawdown == pytest.approx(1.0)

    def test_sell_trade_pnl(self, strategies, clock):
        engine = _engine(strategies, clock)
        engine.apply_entry("XAUUSD", "sell", 2_050.0, 2_060.0, trade_id="g1")
        event = engine.apply_exit("XAUUSD", 2_030.0)
        # size = 29 / 10 = 2.9; pnl = (2050 - 2030) * 2.9 = 58
        assert event.trade.pnl == pytest.approx(58.0)
        assert engine.get_strategy("XAUUSD").current_equity == pytest.approx(2_958.0)

    def test_fifo_closes_oldest_first(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        _enter(engine, "T2")
        first = engine.apply_exit("BTCUSD", 42_500.0)
        assert first.trade.id == "T1"
        assert [t.id for t in engine.open_trades("BTCUSD")] == ["T2"]

        second = engine.apply_exit("BTCUSD", 42_500.0)
        assert second.trade.id == "T2"

    def test_second_entry_sized_on_unchanged_equity(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        second = _enter(engine, "T2")
        assert second.trade.risk_amount == pytest.approx(24.0)

    def test_exit_by_trade_id(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        _enter(engine, "T2")
        event = engine.apply_exit("BTCUSD", 42_500.0, trade_id="T2")
        assert event.trade.id == "T2"
        assert [t.id for t in engine.open_trades("BTCUSD")] == ["T1"]

    def test_no_open_trade_is_benign(self, strategies, clock):
        engine = _engine(strategies, clock)
        before = engine.snapshot("BTCUSD")
        event = engine.apply_exit("BTCUSD", 42_500.0)
        assert event.kind == "no_open_trade"
        assert not event.changed
        assert event.trade is None
        assert event.notification is None
        assert engine.snapshot("BTCUSD") == before

    def test_closed_trade_never_reclosed(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        engine.apply_exit("BTCUSD", 42_500.0)
        event = engine.apply_exit("BTCUSD", 43_000.0, trade_id="T1")
        assert event.kind == "no_open_trade"
        assert engine.trades("BTCUSD")[0].exit_price == 42_500.0

    def test_missing_exit_price_falls_back_to_entry(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        event = engine.apply_exit("BTCUSD")
        assert event.exit_price_fallback
        assert event.trade.exit_price == 42_000.0
        assert event.trade.pnl == 0.0

    def test_exit_unknown_symbol(self, strategies, clock):
        engine = _engine(strategies, clock)
        with pytest.raises(UnknownSymbolError):
            engine.apply_exit("EURUSD", 1.1)

    def test_symbols_are_independent(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        event = engine.apply_exit("XAUUSD", 2_000.0)
        assert event.kind == "no_open_trade"
        assert len(engine.open_trades("BTCUSD")) == 1

    def test_exit_time_from_clock(self, strategies, clock):
        engine = _engine(strategies, clock)
        entry = _enter(engine, "T1")
        event = engine.apply_exit("BTCUSD", 42_500.0)
        assert event.trade.exit_time > entry.trade.entry_time
        assert event.equity_point.timestamp == event.trade.exit_time


# ── Single-open-trade policy ─────────────────────────────────────────────


class TestSinglePolicy:
    def test_second_entry_rejected_while_open(self, strategies, clock):
        engine = _engine(strategies, clock, open_trade_policy="single")
        _enter(engine, "T1")
        with pytest.raises(OpenTradeExistsError, match="T1"):
            _enter(engine, "T2")
        assert [t.id for t in engine.trades("BTCUSD")] == ["T1"]

    def test_entry_allowed_after_close(self, strategies, clock):
        engine = _engine(strategies, clock, open_trade_policy="single")
        _enter(engine, "T1")
        engine.apply_exit("BTCUSD", 42_500.0)
        event = _enter(engine, "T2")
        # sized on the new equity of 2424
        assert event.trade.risk_amount == pytest.approx(24.24)

    def test_unknown_policy(self, strategies, clock):
        with pytest.raises(ValueError, match="open_trade_policy"):
            _engine(strategies, clock, open_trade_policy="netting")


# ── Invariants ───────────────────────────────────────────────────────────


class TestInvariants:
    def test_equity_reconciles_with_closed_pnl(self, strategies, clock):
        engine = _engine(strategies, clock)
        exits = [42_500.0, 41_700.0, 41_500.0, 43_100.0, 42_000.0]
        for i, price in enumerate(exits):
            _enter(engine, f"T{i}")
            engine.apply_exit("BTCUSD", price)
            assert engine.reconcile("BTCUSD")

        state = engine.get_strategy("BTCUSD")
        observed = [p.balance for p in state.equity_curve]
        assert state.peak_equity == pytest.approx(max(observed))

    def test_trades_keep_entry_order(self, strategies, clock):
        engine = _engine(strategies, clock)
        for tid in ("A", "B", "C"):
            _enter(engine, tid)
        engine.apply_exit("BTCUSD", 42_500.0, trade_id="B")
        assert [t.id for t in engine.trades("BTCUSD")] == ["A", "B", "C"]
        assert [t.id for t in engine.trades("BTCUSD", status="closed")] == ["B"]

    def test_returned_trades_are_copies(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        engine.trades("BTCUSD")[0].pnl = 999.0
        assert engine.trades("BTCUSD")[0].pnl == 0.0

    def test_entry_event_keeps_open_snapshot(self, strategies, clock):
        engine = _engine(strategies, clock)
        entry = _enter(engine, "T1")
        engine.apply_exit("BTCUSD", 42_500.0)
        assert entry.trade.status == "OPEN"

    def test_rejects_bad_risk_fraction(self, strategies):
        with pytest.raises(ValueError, match="risk_fraction"):
            LedgerEngine(strategies, risk_fraction=0.0)

    def test_reconcile_checks_latest_curve_point(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        engine.apply_exit("BTCUSD", 42_500.0)
        assert engine.reconcile("BTCUSD")
        engine.get_strategy("BTCUSD").equity_curve.append(EquityPoint(START, 1.0))
        assert not engine.reconcile("BTCUSD")


# ── Checkpoint / restore ─────────────────────────────────────────────────


class TestCheckpointRestore:
    def test_checkpoint_is_independent(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        saved = engine.checkpoint("BTCUSD")
        engine.apply_exit("BTCUSD", 42_500.0)

        assert saved.current_equity == 2_400.0
        assert saved.trades[0].is_open
        assert len(saved.equity_curve) == 1

    def test_restore_checkpoint_undoes_exit(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        _enter(engine, "T2")
        saved = engine.checkpoint("BTCUSD")
        engine.apply_exit("BTCUSD", 42_500.0)

        engine.restore(saved)
        assert [t.id for t in engine.open_trades("BTCUSD")] == ["T1", "T2"]
        assert engine.get_strategy("BTCUSD").current_equity == 2_400.0
        assert len(engine.recorder.points("BTCUSD")) == 1
        assert engine.reconcile("BTCUSD")

        # Replaying the same exit closes the same trade.
        assert engine.apply_exit("BTCUSD", 42_500.0).trade.id == "T1"
        assert len(engine.recorder.points("BTCUSD")) == 2

    def test_restore_seeds_empty_curve(self, strategies, clock):
        engine = _engine(strategies, clock)
        state = StrategyState(
            symbol="BTCUSD",
            strategy_name="Strategy_BTC",
            initial_balance=2_400.0,
            current_equity=2_400.0,
            peak_equity=2_400.0,
        )
        engine.restore(state)

        assert len(state.equity_curve) == 1
        assert state.equity_curve[0].balance == 2_400.0
        assert engine.recorder.latest("BTCUSD") == state.equity_curve[0]
        assert engine.recorder.latest("BTCUSD").timestamp == START + timedelta(minutes=1)


# ── Equity curve ─────────────────────────────────────────────────────────


class TestEquityCurve:
    def test_seed_point_is_initial_balance(self, strategies, clock):
        engine = _engine(strategies, clock)
        points = engine.recorder.points("BTCUSD")
        assert points == [EquityPoint(START, 2_400.0)]

    def test_points_appended_on_exit_only(self, strategies, clock):
        engine = _engine(strategies, clock)
        _enter(engine, "T1")
        assert len(engine.recorder.points("BTCUSD")) == 1
        engine.apply_exit("BTCUSD", 42_500.0)
        points = engine.recorder.points("BTCUSD")
        assert len(points) == 2
        assert points[-1].balance == pytest.approx(2_424.0)
        assert engine.get_strategy("BTCUSD").equity_curve == points

    def test_since_and_limit(self):
        rec = EquityCurveRecorder()
        rec.start("BTCUSD", START, 100.0)
        for i in range(1, 5):
            rec.append("BTCUSD", EquityPoint(START + timedelta(minutes=i), 100.0 + i))

        assert len(rec.points("BTCUSD")) == 5
        assert [p.balance for p in rec.points("BTCUSD", since=START + timedelta(minutes=2))] == [103.0, 104.0]
        assert [p.balance for p in rec.points("BTCUSD", limit=2)] == [103.0, 104.0]
        assert rec.points("BTCUSD", limit=0) == []
        assert rec.latest("BTCUSD").balance == 104.0

    def test_points_returns_copy(self):
        rec = EquityCurveRecorder()
        rec.start("BTCUSD", START, 100.0)
        rec.points("BTCUSD").append(EquityPoint(START, 0.0))
        assert len(rec.points("BTCUSD")) == 1

    def test_unknown_symbol_is_empty(self):
        rec = EquityCurveRecorder()
        assert rec.points("NOPE") == []
        assert rec.latest("NOPE") is None
        with pytest.raises(KeyError):
            rec.append("NOPE", EquityPoint(START, 1.0))
