"""Trade analytics: journal, aggregate stats and metric helpers."""

from __future__ import annotations

from .metrics import (
    calculate_avg_win_loss,
    calculate_profit_factor,
    calculate_sharpe,
    calculate_win_rate,
)
from .performance import PerformanceTracker, TradeRecord

__all__ = [
    "PerformanceTracker",
    "TradeRecord",
    "calculate_win_rate",
    "calculate_profit_factor",
    "calculate_avg_win_loss",
    "calculate_sharpe",
]
