# src/iso5/analytics/performance.py
"""
Trade journal and aggregate statistics.

Each recorded trade realizes its PnL on an internal balance that starts at
`start_balance`; total PnL and return are measured against it.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from iso5.analytics.metrics import (
    calculate_avg_win_loss,
    calculate_profit_factor,
    calculate_sharpe,
    calculate_win_rate,
)
from iso5.core.types import Side


@dataclass(frozen=True)
class TradeRecord:
    entry: float
    exit: float
    side: Side
    quantity: float
    pnl: float
    pnl_percent: float
    timestamp: int
    duration: int  # seconds since the previous recorded trade

    def as_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["side"] = self.side.value
        return d


class PerformanceTracker:
    def __init__(self, start_balance: float) -> None:
        self.start_balance = float(start_balance)
        self._balance = float(start_balance)
        self._trades: list[TradeRecord] = []

    def record_trade(
        self,
        entry: float,
        exit: float,
        side: Side,
        quantity: float,
        timestamp: int,
    ) -> TradeRecord:
        pnl = (exit - entry) * quantity * side.sign
        notional = entry * quantity
        pnl_percent = pnl / notional * 100.0 if notional else 0.0
        duration = timestamp - self._trades[-1].timestamp if self._trades else 0

        trade = TradeRecord(
            entry=float(entry),
            exit=float(exit),
            side=side,
            quantity=quantity,
            pnl=pnl,
            pnl_percent=pnl_percent,
            timestamp=int(timestamp),
            duration=int(duration),
        )
        self._trades.append(trade)
        self._balance += pnl
        return trade

    def get_stats(self) -> dict[str, float]:
        if not self._trades:
            return {
                "total_trades": 0,
                "win_rate": 0.0,
                "profit_factor": 0.0,
                "avg_win": 0.0,
                "avg_loss": 0.0,
                "total_pnl": 0.0,
                "total_return": 0.0,
                "sharpe_ratio": 0.0,
            }

        pnls = [t.pnl for t in self._trades]
        win_rate, _, _ = calculate_win_rate(pnls)
        avg_win, avg_loss = calculate_avg_win_loss(pnls)
        total_pnl = self._balance - self.start_balance

        return {
            "total_trades": len(self._trades),
            "win_rate": win_rate * 100.0,
            "profit_factor": calculate_profit_factor(pnls),
            "avg_win": avg_win,
            "avg_loss": avg_loss,
            "total_pnl": total_pnl,
            "total_return": total_pnl / self.start_balance * 100.0 if self.start_balance else 0.0,
            "sharpe_ratio": calculate_sharpe([t.pnl_percent for t in self._trades]),
        }

    def get_trades(self) -> list[TradeRecord]:
        return list(self._trades)

    @property
    def balance(self) -> float:
        return self._balance

    @property
    def total_trades(self) -> int:
        return len(self._trades)
