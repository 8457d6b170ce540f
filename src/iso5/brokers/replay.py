# src/iso5/brokers/replay.py
"""
Historical replay provider for backtests.

Each fetch_price() hands out the next stored sample and moves the replay
clock to its timestamp. execute(side) settles one unit against the following
sample: profit = (next - current) in the trade direction, 0.0 at the end of
the data.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from iso5.brokers.base import ExecutionError, ReplayExhausted
from iso5.core.types import ExecutionResult, PriceSample, Side


class ReplayProvider:
    def __init__(self, samples: Iterable[PriceSample]) -> None:
        self._pending: deque[PriceSample] = deque(samples)
        self._current: PriceSample | None = None
        self.executions: list[tuple[Side, ExecutionResult]] = []

    @property
    def remaining(self) -> int:
        return len(self._pending)

    @property
    def current(self) -> PriceSample | None:
        return self._current

    def clock(self) -> float:
        """Replay time: timestamp of the last sample handed out."""
        if self._current is None:
            if self._pending:
                return float(self._pending[0].timestamp)
            return 0.0
        return float(self._current.timestamp)

    async def fetch_price(self) -> PriceSample:
        if not self._pending:
            raise ReplayExhausted("no more data")
        self._current = self._pending.popleft()
        return self._current

    async def execute(self, side: Side) -> ExecutionResult:
        if self._current is None:
            raise ExecutionError("execute() before any price was replayed")
        if self._pending:
            nxt = self._pending[0].price
            profit = (nxt - self._current.price) * side.sign
            result = ExecutionResult(profit=profit, exit_price=nxt)
        else:
            result = ExecutionResult(profit=0.0, exit_price=self._current.price)
        self.executions.append((side, result))
        return result
