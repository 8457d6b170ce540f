# ============================================================
# src/iso5/core/risk.py — Tamaño de posición, salidas y drawdown
# ------------------------------------------------------------
# - Dimensiona posiciones a partir del balance y el riesgo por trade
# - Calcula niveles de stop-loss / take-profit según el lado
# - Cierra posiciones al tocar un nivel y realiza el PnL
# - Sigue el máximo histórico del balance y el drawdown %
# - Bloquea posiciones nuevas mientras el drawdown supere el límite
#
# Todo el estado mutable vive en AccountState para que los tests
# (y el backtester) puedan montar ledgers aislados.
# ============================================================

from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
import time
from typing import Any

from loguru import logger

from iso5.core.types import ExitReport, Position, Side


# -----------------------------
# Configuración y estado
# -----------------------------
@dataclass(frozen=True)
class RiskConfig:
    risk_per_trade: float = 2.0  # % del balance arriesgado por trade
    max_drawdown: float = 10.0  # % desde el pico antes de bloquear posiciones nuevas
    max_position_size: float = 1000.0  # nocional máximo por posición (divisa)
    stop_loss_percent: float = 2.0
    take_profit_percent: float = 5.0
    max_leverage: float = 1.0

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> RiskConfig:
        """Construye la config desde la sección `risk` de config.yaml."""
        section = cfg.get("risk", cfg)
        return cls(
            risk_per_trade=float(section.get("risk_per_trade", cls.risk_per_trade)),
            max_drawdown=float(section.get("max_drawdown", cls.max_drawdown)),
            max_position_size=float(section.get("max_position_size", cls.max_position_size)),
            stop_loss_percent=float(section.get("stop_loss_percent", cls.stop_loss_percent)),
            take_profit_percent=float(
                section.get("take_profit_percent", cls.take_profit_percent)
            ),
            max_leverage=float(section.get("max_leverage", cls.max_leverage)),
        )


@dataclass
class AccountState:
    balance: float
    drawdown_peak: float
    current_drawdown_percent: float = 0.0
    open_positions: dict[int, Position] = field(default_factory=dict)
    next_position_id: int = 1

    @classmethod
    def starting(cls, balance: float) -> AccountState:
        return cls(balance=float(balance), drawdown_peak=float(balance))


def drawdown_after(peak: float, balance: float) -> tuple[float, float]:
    """
    Devuelve (nuevo_pico, drawdown_percent) tras un cambio de balance.
    El pico nunca baja; el drawdown nunca es negativo.
    The peak never decreases; drawdown is floored at 0.
    """
    new_peak = max(peak, balance)
    if new_peak <= 0.0:
        return new_peak, 0.0
    pct = (new_peak - balance) / new_peak * 100.0
    return new_peak, max(0.0, pct)


def protective_levels(side: Side, entry_price: float, cfg: RiskConfig) -> tuple[float, float]:
    """(stop_loss, take_profit) para una entrada en `side`."""
    sl = cfg.stop_loss_percent / 100.0
    tp = cfg.take_profit_percent / 100.0
    if side is Side.LONG:
        return entry_price * (1.0 - sl), entry_price * (1.0 + tp)
    return entry_price * (1.0 + sl), entry_price * (1.0 - tp)


# -----------------------------
# RiskManager
# -----------------------------
class RiskManager:
    """
    Dueño del ledger de la cuenta. Ciclo de vida: none -> open -> closed.
    Las posiciones se indexan por un id creciente, así que dos posiciones
    con el mismo lado y precio de entrada conviven.
    """

    def __init__(
        self,
        config: RiskConfig,
        initial_balance: float | None = None,
        state: AccountState | None = None,
    ) -> None:
        if state is None:
            if initial_balance is None:
                raise ValueError("initial_balance or state is required")
            state = AccountState.starting(initial_balance)
        self.config = config
        self.state = state

        logger.debug(
            f"RiskManager created: balance={self.state.balance:.2f}, "
            f"risk_per_trade={config.risk_per_trade}%, max_dd={config.max_drawdown}%"
        )

    # -------- Lectura --------
    @property
    def balance(self) -> float:
        return self.state.balance

    @property
    def drawdown(self) -> float:
        return self.state.current_drawdown_percent

    def positions(self) -> dict[int, Position]:
        return dict(self.state.open_positions)

    def get_metrics(self) -> dict[str, Any]:
        return {
            "balance": self.state.balance,
            "drawdown": self.state.current_drawdown_percent,
            "open_positions": len(self.state.open_positions),
            "peak": self.state.drawdown_peak,
        }

    # -------- Tamaño --------
    def calculate_position_size(self, entry_price: float) -> int:
        """
        floor(min(balance * risk%, max_position_size) / entry_price).
        0 significa "no operar".
        """
        if entry_price <= 0.0:
            return 0
        risk_amount = self.state.balance * self.config.risk_per_trade / 100.0
        budget = min(risk_amount, self.config.max_position_size)
        qty = math.floor(budget / entry_price)
        return qty if qty > 0 else 0

    # -------- Apertura --------
    def build_position(
        self,
        side: Side,
        entry_price: float,
        quantity: float,
        timestamp: int | None = None,
    ) -> Position | None:
        """
        Valida una posición candidata y calcula sus niveles de protección
        sin tocar el ledger. None si se rechaza.
        """
        if quantity <= 0:
            return None

        notional = quantity * entry_price
        if notional > self.config.max_position_size:
            logger.warning(
                f"Position rejected: notional {notional:.2f} exceeds max size "
                f"{self.config.max_position_size:.2f}"
            )
            return None

        if self.state.current_drawdown_percent > self.config.max_drawdown:
            logger.warning(
                f"Position rejected: drawdown {self.state.current_drawdown_percent:.2f}% "
                f"above limit {self.config.max_drawdown:.2f}%"
            )
            return None

        stop_loss, take_profit = protective_levels(side, entry_price, self.config)
        return Position(
            entry_price=float(entry_price),
            quantity=quantity,
            side=side,
            timestamp=int(timestamp if timestamp is not None else time.time()),
            stop_loss=stop_loss,
            take_profit=take_profit,
        )

    def open_position(self, position: Position) -> Position:
        """Registra en el ledger una posición ya construida y le asigna id."""
        pid = self.state.next_position_id
        self.state.next_position_id += 1
        committed = replace(position, id=pid)
        self.state.open_positions[pid] = committed
        logger.debug(
            f"OPEN #{pid} {committed.side.value} qty={committed.quantity} "
            f"@ {committed.entry_price:.4f} sl={committed.stop_loss:.4f} "
            f"tp={committed.take_profit:.4f}"
        )
        return committed

    def create_position(
        self,
        side: Side,
        entry_price: float,
        quantity: float,
        timestamp: int | None = None,
    ) -> Position | None:
        position = self.build_position(side, entry_price, quantity, timestamp)
        if position is None:
            return None
        return self.open_position(position)

    # -------- Salidas --------
    def check_exits(self, current_price: float) -> ExitReport:
        """
        Cierra toda posición cuyo stop-loss o take-profit se toque.
        El stop-loss se evalúa primero y gana si saltan los dos.
        """
        report = ExitReport()
        for pid, pos in list(self.state.open_positions.items()):
            if pos.side is Side.LONG:
                hit_sl = current_price <= pos.stop_loss
                hit_tp = current_price >= pos.take_profit
            else:
                hit_sl = current_price >= pos.stop_loss
                hit_tp = current_price <= pos.take_profit

            if hit_sl:
                report.liquidated.append(pid)
                self.close_position(pid, pos.stop_loss, "stop-loss")
            elif hit_tp:
                report.stopped.append(pid)
                self.close_position(pid, pos.take_profit, "take-profit")
        return report

    def close_position(self, position_id: int, exit_price: float, reason: str) -> float | None:
        """Realiza el PnL a exit_price y elimina la posición. None si no existe."""
        pos = self.state.open_positions.get(position_id)
        if pos is None:
            return None

        pnl = pos.pnl_at(exit_price)
        self.state.balance += pnl
        self._update_drawdown()
        del self.state.open_positions[position_id]

        logger.info(
            f"Closed #{position_id} {pos.side.value} @ {exit_price:.4f} ({reason}): "
            f"PnL={pnl:+.4f} balance={self.state.balance:.2f}"
        )
        return pnl

    def _update_drawdown(self) -> None:
        peak, pct = drawdown_after(self.state.drawdown_peak, self.state.balance)
        self.state.drawdown_peak = peak
        self.state.current_drawdown_percent = pct
