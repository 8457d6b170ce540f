"""Historical replay of the agent."""

from __future__ import annotations

from iso5.backtest.backtester import Backtester, BacktestResult
from iso5.backtest.datafeed import load_price_csv

__all__ = ["Backtester", "BacktestResult", "load_price_csv"]
