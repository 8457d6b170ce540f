# src/iso5/core/types.py
"""
Tipos comunes que comparten el generador de señales, el ledger de riesgo,
los proveedores y el scheduler.

Los timestamps son segundos UNIX enteros en todas partes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import time
from typing import Any

# ------------------------------ Enums ------------------------------------


class Side(str, Enum):
    """Lado de una posición abierta."""

    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def sign(self) -> int:
        return 1 if self is Side.LONG else -1


class Signal(str, Enum):
    """Recomendación direccional que emite el generador de señales."""

    LONG = "LONG"
    SHORT = "SHORT"
    NONE = "NONE"

    @property
    def side(self) -> Side | None:
        if self is Signal.NONE:
            return None
        return Side(self.value)

    def __bool__(self) -> bool:
        return self is not Signal.NONE


# ------------------------------ Dataclasses -------------------------------


@dataclass(frozen=True)
class PriceSample:
    """Una observación de precio del proveedor de datos de mercado."""

    timestamp: int
    price: float

    def __post_init__(self) -> None:
        if not self.price > 0.0:
            raise ValueError(f"price must be > 0, got {self.price!r}")

    @classmethod
    def now(cls, price: float) -> PriceSample:
        return cls(timestamp=int(time.time()), price=float(price))

    def as_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "price": self.price}


@dataclass(frozen=True)
class Position:
    """
    Posición abierta en el ledger de riesgo.

    `id` vale 0 hasta que la posición se registra con RiskManager.open_position().
    """

    entry_price: float
    quantity: float
    side: Side
    timestamp: int
    stop_loss: float
    take_profit: float
    id: int = 0

    @property
    def notional(self) -> float:
        return self.quantity * self.entry_price

    def pnl_at(self, exit_price: float) -> float:
        return (exit_price - self.entry_price) * self.quantity * self.side.sign

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "side": self.side.value,
            "entry_price": self.entry_price,
            "quantity": self.quantity,
            "timestamp": self.timestamp,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
        }


@dataclass(frozen=True)
class ExecutionResult:
    """
    Resultado de una ejecución.
    - profit va en la divisa de la cuenta; su signo alimenta el circuit breaker.
    - exit_price es opcional; lo rellenan los proveedores que conocen el fill.
    """

    profit: float
    exit_price: float | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExitReport:
    """Ids de las posiciones cerradas por RiskManager.check_exits()."""

    liquidated: list[int] = field(default_factory=list)  # saltó el stop-loss
    stopped: list[int] = field(default_factory=list)  # saltó el take-profit

    def __bool__(self) -> bool:
        return bool(self.liquidated or self.stopped)


__all__ = [
    "Side",
    "Signal",
    "PriceSample",
    "Position",
    "ExecutionResult",
    "ExitReport",
]
