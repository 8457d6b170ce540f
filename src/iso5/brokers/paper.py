# src/iso5/brokers/paper.py
"""
Offline paper provider.

Prices follow a geometric random walk and executions return a profit drawn
uniformly from [-1, 1]. Both come from one seeded numpy Generator, so a given
seed replays the same session.
"""

from __future__ import annotations

import time
from typing import Any

import numpy as np

from iso5.core.types import ExecutionResult, PriceSample, Side


class PaperProvider:
    def __init__(
        self,
        start_price: float = 100.0,
        volatility: float = 0.002,
        seed: int | None = None,
        profit_range: tuple[float, float] = (-1.0, 1.0),
    ) -> None:
        if start_price <= 0:
            raise ValueError("start_price must be > 0")
        self.volatility = float(volatility)
        self.profit_range = profit_range
        self._rng = np.random.default_rng(seed)
        self._price = float(start_price)
        self.fills: list[dict[str, Any]] = []

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> PaperProvider:
        section = cfg.get("provider", {})
        seed = section.get("seed")
        return cls(
            start_price=float(section.get("start_price", 100.0)),
            volatility=float(section.get("volatility", 0.002)),
            seed=int(seed) if seed is not None else None,
        )

    @property
    def price(self) -> float:
        return self._price

    async def fetch_price(self) -> PriceSample:
        shock = float(self._rng.normal(0.0, self.volatility))
        self._price = self._price * float(np.exp(shock))
        return PriceSample(timestamp=int(time.time()), price=self._price)

    async def execute(self, side: Side) -> ExecutionResult:
        lo, hi = self.profit_range
        profit = float(self._rng.uniform(lo, hi))
        self.fills.append({"side": side.value, "price": self._price, "profit": profit})
        return ExecutionResult(profit=profit, meta={"paper": True})
