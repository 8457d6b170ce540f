from __future__ import annotations

# -----------------------------------------------------------------------------
# Trade performance metrics (win rate, profit factor, Sharpe)
# -----------------------------------------------------------------------------

import numpy as np

TRADING_DAYS = 252


def calculate_win_rate(trades_pnl: list[float]) -> tuple[float, int, int]:
    """
    Win Rate = Winning Trades / Total Trades

    Returns:
        (win_rate, num_wins, num_losses); breakeven trades count in the total only.
    """
    if not trades_pnl:
        return 0.0, 0, 0

    num_wins = sum(1 for pnl in trades_pnl if pnl > 0)
    num_losses = sum(1 for pnl in trades_pnl if pnl < 0)
    return num_wins / len(trades_pnl), num_wins, num_losses


def calculate_profit_factor(trades_pnl: list[float]) -> float:
    """
    Profit Factor = Gross Profit / Gross Loss

    With no losing trade the gross profit itself is returned.
    """
    gross_profit = sum(pnl for pnl in trades_pnl if pnl > 0)
    gross_loss = abs(sum(pnl for pnl in trades_pnl if pnl < 0))
    if gross_loss > 0:
        return gross_profit / gross_loss
    return gross_profit


def calculate_avg_win_loss(trades_pnl: list[float]) -> tuple[float, float]:
    """
    Returns:
        (avg_win, avg_loss) with avg_loss as a positive magnitude.
    """
    winning = [pnl for pnl in trades_pnl if pnl > 0]
    losing = [pnl for pnl in trades_pnl if pnl < 0]

    avg_win = sum(winning) / len(winning) if winning else 0.0
    avg_loss = abs(sum(losing)) / len(losing) if losing else 0.0
    return avg_win, avg_loss


def calculate_sharpe(returns_pct: list[float], periods: int = TRADING_DAYS) -> float:
    """
    Sharpe = mean / std * sqrt(periods), population std.

    0.0 when there are no returns or they have no dispersion.
    """
    if not returns_pct:
        return 0.0
    arr = np.asarray(returns_pct, dtype=float)
    std = float(arr.std())
    if std == 0.0:
        return 0.0
    return float(arr.mean() / std * np.sqrt(periods))
