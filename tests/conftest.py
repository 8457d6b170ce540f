import sys
from pathlib import Path

# Ensure the `src` folder is on sys.path when running pytest so `import iso5`
# works without installing the package (same as PYTHONPATH=$(pwd)/src).
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

import pytest  # noqa: E402

from iso5.core.risk import RiskConfig, RiskManager  # noqa: E402
from iso5.core.types import ExecutionResult, PriceSample, Side  # noqa: E402


class FakeProvider:
    """
    Scripted provider for scheduler tests.
    - prices: consumed one per fetch_price(); an Exception instance is raised instead.
    - profits: consumed one per execute(); an Exception instance is raised instead.
    """

    def __init__(self, prices=(), profits=(), start_ts: int = 1_700_000_000, step: int = 15):
        self.prices = list(prices)
        self.profits = list(profits)
        self.ts = start_ts
        self.step = step
        self.fetch_calls = 0
        self.executed: list[Side] = []
        self.fetch_gate = None  # asyncio.Event to hold fetch_price() open

    async def fetch_price(self) -> PriceSample:
        self.fetch_calls += 1
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        item = self.prices.pop(0)
        if isinstance(item, Exception):
            raise item
        sample = PriceSample(timestamp=self.ts, price=float(item))
        self.ts += self.step
        return sample

    async def execute(self, side: Side) -> ExecutionResult:
        self.executed.append(side)
        item = self.profits.pop(0) if self.profits else 0.0
        if isinstance(item, Exception):
            raise item
        return ExecutionResult(profit=float(item))


class StepClock:
    """Clock returning the next scripted time on every call (last value repeats)."""

    def __init__(self, times):
        self.times = list(times)

    def __call__(self) -> float:
        if len(self.times) > 1:
            return float(self.times.pop(0))
        return float(self.times[0])


@pytest.fixture
def risk_config() -> RiskConfig:
    return RiskConfig(
        risk_per_trade=2.0,
        max_drawdown=10.0,
        max_position_size=1000.0,
        stop_loss_percent=2.0,
        take_profit_percent=5.0,
        max_leverage=1.0,
    )


@pytest.fixture
def risk(risk_config: RiskConfig) -> RiskManager:
    return RiskManager(risk_config, initial_balance=10_000.0)


@pytest.fixture
def fake_provider_cls():
    return FakeProvider


@pytest.fixture
def step_clock_cls():
    return StepClock
