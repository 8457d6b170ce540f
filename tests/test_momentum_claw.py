# tests/test_momentum_claw.py
from __future__ import annotations

import pytest

from iso5.core.types import PriceSample, Signal
from iso5.strategies import MomentumClaw, build_strategy, get_strategy_class, list_strategies


def _feed(strategy: MomentumClaw, prices: list[float], start_ts: int = 0) -> None:
    for i, p in enumerate(prices):
        strategy.update(PriceSample(timestamp=start_ts + 15 * i, price=p))


def test_window_never_exceeds_capacity_and_keeps_latest() -> None:
    s = MomentumClaw()
    _feed(s, [100.0 + i for i in range(100)])

    assert len(s) == 40
    prices = [x.price for x in s.window]
    assert prices == [100.0 + i for i in range(60, 100)]  # FIFO, arrival order


def test_fewer_than_two_samples_is_none() -> None:
    s = MomentumClaw()
    assert s.evaluate() is Signal.NONE
    _feed(s, [250.0])
    assert s.evaluate() is Signal.NONE
    assert s.velocity() is None


def test_flat_window_is_none() -> None:
    s = MomentumClaw()
    _feed(s, [100.0] * 40)
    assert s.velocity() == 0.0
    assert s.evaluate() is Signal.NONE


def test_rising_prices_give_long() -> None:
    s = MomentumClaw()
    _feed(s, [100.0 + 2.0 * i / 9 for i in range(10)])  # 100 -> 102 in 10 samples

    assert s.velocity() == pytest.approx(2.0 / 9)
    assert s.evaluate() is Signal.LONG


def test_falling_prices_give_short() -> None:
    s = MomentumClaw()
    _feed(s, [100.0, 99.0, 98.0])
    assert s.evaluate() is Signal.SHORT


def test_threshold_is_strict_and_absolute() -> None:
    ramp = [1.0, 1.1, 1.2, 1.3, 1.4, 1.5]  # (1.5 - 1.0) / 5 == 0.1 exactly

    up = MomentumClaw()
    _feed(up, ramp)
    assert up.velocity() == 0.1
    assert up.evaluate() is Signal.NONE

    down = MomentumClaw()
    _feed(down, list(reversed(ramp)))
    assert down.velocity() == -0.1
    assert down.evaluate() is Signal.NONE

    big = MomentumClaw()
    _feed(big, [50_000.0, 50_000.05])  # tiny relative move, still under 0.1 absolute
    assert big.evaluate() is Signal.NONE


def test_velocity_uses_whole_window_not_last_step() -> None:
    s = MomentumClaw()
    # long flat stretch then one jump: (101 - 100) / 39 ≈ 0.026
    _feed(s, [100.0] * 39 + [101.0])
    assert s.evaluate() is Signal.NONE


def test_evaluate_is_pure() -> None:
    s = MomentumClaw()
    _feed(s, [100.0, 101.0, 102.0])
    before = s.window
    assert s.evaluate() is s.evaluate() is Signal.LONG
    assert s.window == before


def test_registry_and_config() -> None:
    assert "momentum_claw" in list_strategies()
    assert get_strategy_class("momentum_claw") is MomentumClaw
    s = build_strategy("momentum_claw", {"agent": {"window_size": 5, "velocity_threshold": 0.5}})
    assert isinstance(s, MomentumClaw)
    assert s.window_size == 5
    assert s.threshold == 0.5

    with pytest.raises(KeyError):
        get_strategy_class("does_not_exist")


def test_reset_clears_window() -> None:
    s = MomentumClaw()
    _feed(s, [1.0, 2.0, 3.0])
    s.reset()
    assert len(s) == 0
    assert s.evaluate() is Signal.NONE
