# tests/test_engine.py
from __future__ import annotations

import asyncio

import pytest

from iso5.analytics.performance import PerformanceTracker
from iso5.brokers.base import ExecutionError, TransientFetchError
from iso5.core.engine import AgentSettings, TickOutcome, TickScheduler
from iso5.core.telemetry import Telemetry
from iso5.core.types import Side
from iso5.strategies import MomentumClaw


@pytest.fixture
def make_scheduler(risk, fake_provider_cls, step_clock_cls):
    def _make(prices=(), profits=(), times=(0,), **overrides):
        settings = AgentSettings(
            **{
                "initial_balance": 10_000.0,
                "interval_seconds": 300,
                "call_timeout_s": 1.0,
                **overrides,
            }
        )
        provider = fake_provider_cls(prices=prices, profits=profits)
        return TickScheduler(
            provider=provider,
            strategy=MomentumClaw(),
            risk=risk,
            settings=settings,
            telemetry=Telemetry(name="test"),
            clock=step_clock_cls(times),
        )

    return _make


def _run_ticks(scheduler: TickScheduler, n: int) -> list[TickOutcome]:
    return [asyncio.run(scheduler.tick()) for _ in range(n)]


def _messages(scheduler: TickScheduler, level: str | None = None) -> list[str]:
    return [e.message for e in scheduler.telemetry.get_logs(level)]


# ----------------------------- interval boundary ----------------------------


def test_evaluates_only_on_new_interval(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0, 100.0, 100.0], times=[0, 15, 300])

    outcomes = _run_ticks(sched, 3)

    assert outcomes == [TickOutcome.NO_SIGNAL, TickOutcome.NO_BOUNDARY, TickOutcome.NO_SIGNAL]
    assert sched.current_interval == 1
    # every tick still feeds the window
    assert len(sched.strategy) == 3


def test_rising_price_opens_long(make_scheduler) -> None:
    # ten samples at a 15s cadence, +2.0 over the window -> velocity 2/9
    prices = [100.0 + 2.0 * i / 9 for i in range(10)]
    times = [0, 15, 30, 45, 60, 75, 90, 105, 120, 300]
    sched = make_scheduler(prices=prices, times=times)

    outcomes = _run_ticks(sched, 10)

    assert outcomes == (
        [TickOutcome.NO_SIGNAL] + [TickOutcome.NO_BOUNDARY] * 8 + [TickOutcome.TRADED]
    )
    assert len(sched.strategy) == 10
    assert sched.strategy.velocity() == pytest.approx(2.0 / 9)
    assert sched.provider.executed == [Side.LONG]

    (pos,) = sched.risk.positions().values()
    assert pos.side is Side.LONG
    assert pos.quantity == 1  # floor(200 / 102)
    assert pos.entry_price == pytest.approx(102.0)
    assert pos.stop_loss == pytest.approx(99.96)
    assert pos.take_profit == pytest.approx(107.1)
    assert sched.performance.total_trades == 1
    assert "trade executed" in _messages(sched, "INFO")


def test_injected_collaborators_are_kept(risk, fake_provider_cls, step_clock_cls) -> None:
    sink = Telemetry(name="injected")
    tracker = PerformanceTracker(risk.balance)
    sched = TickScheduler(
        provider=fake_provider_cls(prices=[100.0]),
        strategy=MomentumClaw(),
        risk=risk,
        settings=AgentSettings(initial_balance=10_000.0, interval_seconds=300),
        telemetry=sink,
        performance=tracker,
        clock=step_clock_cls([0]),
    )

    assert len(sink) == 0
    assert sched.telemetry is sink
    assert sched.performance is tracker

    assert asyncio.run(sched.tick()) is TickOutcome.NO_SIGNAL
    assert len(sink) > 0
    assert sink.get_logs()[-1].message == "interval boundary"


def test_size_zero_skips_trade(make_scheduler) -> None:
    # 2% of 10_000 = 200 < 300 -> quantity 0
    sched = make_scheduler(prices=[290.0, 300.0], times=[0, 300])

    outcomes = _run_ticks(sched, 2)

    assert outcomes[-1] is TickOutcome.SIZE_REJECTED
    assert sched.provider.executed == []


def test_risk_rejection_skips_execution(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0, 102.0], times=[0, 300])
    sched.risk.state.current_drawdown_percent = 50.0

    outcomes = _run_ticks(sched, 2)

    assert outcomes[-1] is TickOutcome.RISK_REJECTED
    assert sched.provider.executed == []
    assert "risk manager rejected position" in _messages(sched, "WARN")


# ----------------------------- circuit breaker -----------------------------


def test_three_losses_pause_and_stop_all_activity(make_scheduler) -> None:
    sched = make_scheduler(
        prices=[100.0, 101.0, 102.0, 103.0, 104.0],
        profits=[-1.0, -1.0, -1.0],
        times=[0, 300, 600, 900, 1200],
    )

    outcomes = _run_ticks(sched, 4)
    assert outcomes == [TickOutcome.NO_SIGNAL] + [TickOutcome.TRADED] * 3
    assert sched.paused
    assert sched.get_status()["circuit"] == {"paused": True, "losses": 3}
    assert "circuit breaker triggered, pausing agent" in _messages(sched, "WARN")

    # paused: no fetch, no execution
    assert asyncio.run(sched.tick()) is TickOutcome.PAUSED
    assert sched.provider.fetch_calls == 4
    assert len(sched.provider.executed) == 3


def test_resume_clears_pause(make_scheduler) -> None:
    sched = make_scheduler(
        prices=[100.0, 101.0, 102.0],
        profits=[-1.0],
        times=[0, 300, 301],
        max_consecutive_losses=1,
    )
    _run_ticks(sched, 2)
    assert sched.paused

    sched.resume()

    assert not sched.paused
    assert asyncio.run(sched.tick()) is TickOutcome.NO_BOUNDARY
    assert sched.provider.fetch_calls == 3


# ----------------------------- failures -----------------------------


def test_fetch_failure_is_reported_and_next_tick_proceeds(make_scheduler) -> None:
    sched = make_scheduler(prices=[TransientFetchError("503"), 100.0], times=[0])

    outcomes = _run_ticks(sched, 2)

    assert outcomes == [TickOutcome.FETCH_FAILED, TickOutcome.NO_SIGNAL]
    assert "price fetch failed" in _messages(sched, "WARN")
    assert len(sched.strategy) == 1


def test_execution_failure_leaves_ledger_untouched(make_scheduler) -> None:
    sched = make_scheduler(
        prices=[100.0, 102.0],
        profits=[ExecutionError("order rejected")],
        times=[0, 300],
    )

    outcomes = _run_ticks(sched, 2)

    assert outcomes[-1] is TickOutcome.EXECUTION_FAILED
    assert sched.risk.positions() == {}
    assert sched.circuit.losses == 0
    assert sched.performance.total_trades == 0
    last = sched.telemetry.get_last_error()
    assert last is not None and last.message == "execution failed"


def test_fetch_timeout_counts_as_failure(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0], call_timeout_s=0.05)

    async def scenario():
        sched.provider.fetch_gate = asyncio.Event()  # never released
        return await sched.tick()

    assert asyncio.run(scenario()) is TickOutcome.FETCH_FAILED
    assert "price fetch failed" in _messages(sched, "WARN")
    assert sched.provider.prices == [100.0]


def test_unexpected_error_does_not_escape(make_scheduler) -> None:
    sched = make_scheduler(prices=[RuntimeError("bug"), 100.0])

    outcomes = _run_ticks(sched, 2)

    assert outcomes == [TickOutcome.ERROR, TickOutcome.NO_SIGNAL]
    last = sched.telemetry.get_last_error()
    assert last is not None
    assert last.message == "unexpected error during tick"
    assert "bug" in last.data["error"]


def test_overlapping_tick_is_skipped(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0], call_timeout_s=None)

    async def scenario():
        sched.provider.fetch_gate = asyncio.Event()
        first = asyncio.create_task(sched.tick())
        await asyncio.sleep(0)  # first tick takes the guard and blocks on fetch
        second = await sched.tick()
        sched.provider.fetch_gate.set()
        return await first, second

    first, second = asyncio.run(scenario())

    assert second is TickOutcome.SKIPPED
    assert first is TickOutcome.NO_SIGNAL
    assert sched.provider.fetch_calls == 1
    assert sched.ticks == 1


# ----------------------------- exits and reporting -----------------------------


def test_stop_loss_hit_is_reported(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0, 102.0, 90.0], times=[0, 300, 301])

    outcomes = _run_ticks(sched, 3)

    assert outcomes == [TickOutcome.NO_SIGNAL, TickOutcome.TRADED, TickOutcome.NO_BOUNDARY]
    assert sched.risk.positions() == {}
    assert sched.risk.balance == pytest.approx(10_000.0 - 2.04)
    assert "position liquidated" in _messages(sched, "WARN")


def test_performance_snapshot_every_n_trades(make_scheduler) -> None:
    sched = make_scheduler(
        prices=[100.0, 101.0, 102.0],
        profits=[1.0, 1.0],
        times=[0, 300, 600],
        snapshot_every=2,
    )

    _run_ticks(sched, 3)

    assert _messages(sched, "INFO").count("performance snapshot") == 1
    snap = [e for e in sched.telemetry.get_logs("INFO") if e.message == "performance snapshot"][0]
    assert snap.data["total_trades"] == 2


def test_get_status_shape(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0])
    _run_ticks(sched, 1)

    status = sched.get_status()

    assert set(status) == {"circuit", "risk", "performance", "last_price"}
    assert status["last_price"] == 100.0
    assert status["risk"]["balance"] == 10_000.0
    assert status["performance"]["total_trades"] == 0


# ----------------------------- run loop -----------------------------


def test_run_fires_max_ticks(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0, 100.5, 101.0], tick_seconds=0.01)

    asyncio.run(sched.run(max_ticks=3))

    assert sched.ticks == 3
    assert sched.provider.fetch_calls == 3
    assert not sched.running
    assert "agent stopped" in _messages(sched, "INFO")


def test_stop_ends_run(make_scheduler) -> None:
    sched = make_scheduler(prices=[100.0] * 50, tick_seconds=0.01)

    async def scenario():
        asyncio.get_running_loop().call_later(0.05, sched.stop)
        await sched.run()

    asyncio.run(scenario())

    assert not sched.running
    assert sched.ticks >= 1


def test_settings_from_config() -> None:
    settings = AgentSettings.from_config(
        {
            "agent": {
                "initial_balance": 500,
                "tick_seconds": 5,
                "interval_seconds": 60,
                "max_consecutive_losses": 2,
                "snapshot_every": 4,
                "call_timeout_s": 0,
            }
        }
    )
    assert settings.initial_balance == 500.0
    assert settings.interval_seconds == 60
    assert settings.max_consecutive_losses == 2
    assert settings.call_timeout_s is None
