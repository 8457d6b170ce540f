# src/iso5/backtest/backtester.py
"""
Reproduce precios históricos a través del TickScheduler real.

El scheduler recibe un ReplayProvider y el reloj del replay, así los
límites de intervalo siguen los timestamps de los datos. Sin sleeps entre ticks.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import asdict, dataclass
import copy
from pathlib import Path
from typing import Any

from loguru import logger

from iso5.backtest.datafeed import load_price_csv
from iso5.brokers.replay import ReplayProvider
from iso5.core.config_loader import default_config
from iso5.core.engine import TickOutcome, TickScheduler
from iso5.core.telemetry import Telemetry
from iso5.core.types import PriceSample


@dataclass(frozen=True)
class BacktestResult:
    trades: int
    win_rate: float
    total_pnl: float
    period_start: int
    period_end: int
    final_balance: float
    paused: bool

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class Backtester:
    def __init__(
        self,
        config: dict[str, Any] | None = None,
        initial_balance: float | None = None,
    ) -> None:
        cfg = copy.deepcopy(config) if config is not None else default_config()
        if initial_balance is not None:
            cfg.setdefault("agent", {})["initial_balance"] = float(initial_balance)
        self.config = cfg
        self.history: list[PriceSample] = []
        self.scheduler: TickScheduler | None = None
        self.outcomes: list[TickOutcome] = []

    def load_csv(self, path: str | Path) -> int:
        samples = load_price_csv(path)
        self.history.extend(samples)
        logger.info(f"Loaded {len(samples)} samples from {path}")
        return len(samples)

    def load_samples(self, samples: Iterable[PriceSample]) -> int:
        before = len(self.history)
        self.history.extend(samples)
        return len(self.history) - before

    def run(self) -> BacktestResult:
        return asyncio.run(self.run_async())

    async def run_async(self) -> BacktestResult:
        if not self.history:
            raise ValueError("No data loaded")

        provider = ReplayProvider(self.history)
        scheduler = TickScheduler.from_config(
            self.config,
            provider=provider,
            telemetry=Telemetry(name="backtest"),
            clock=provider.clock,
        )
        self.scheduler = scheduler
        self.outcomes = []

        while provider.remaining > 0:
            outcome = await scheduler.tick()
            self.outcomes.append(outcome)
            if outcome is TickOutcome.PAUSED:
                logger.warning("Circuit breaker paused the backtest early")
                break

        stats = scheduler.performance.get_stats()
        result = BacktestResult(
            trades=int(stats["total_trades"]),
            win_rate=float(stats["win_rate"]),
            total_pnl=float(stats["total_pnl"]),
            period_start=self.history[0].timestamp,
            period_end=self.history[-1].timestamp,
            final_balance=scheduler.risk.balance,
            paused=scheduler.paused,
        )
        logger.info(f"Backtest complete: {result}")
        return result
