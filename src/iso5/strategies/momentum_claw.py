# src/iso5/strategies/momentum_claw.py
from __future__ import annotations

from collections import deque
from typing import Any

from iso5.core.types import PriceSample, Signal
from iso5.strategies.base import Strategy, register_strategy

DEFAULT_WINDOW = 40  # ~10 minutos de muestras con cadencia de 15s
DEFAULT_THRESHOLD = 0.1  # unidades absolutas de precio por muestra


@register_strategy("momentum_claw")
class MomentumClaw(Strategy):
    """
    Detector de tendencia lineal sobre toda la ventana móvil.

    velocity = (last - first) / (len - 1), comparada con un umbral
    absoluto. La ventana tarda muchos ticks en llenarse antes de que la
    señal signifique algo; con menos de 2 muestras siempre es NONE.
    """

    name = "momentum_claw"

    def __init__(
        self, window_size: int = DEFAULT_WINDOW, threshold: float = DEFAULT_THRESHOLD
    ) -> None:
        if window_size < 2:
            raise ValueError("window_size must be >= 2")
        self.window_size = int(window_size)
        self.threshold = float(threshold)
        self._win: deque[PriceSample] = deque(maxlen=self.window_size)

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> MomentumClaw:
        agent = cfg.get("agent", {})
        return cls(
            window_size=int(agent.get("window_size", DEFAULT_WINDOW)),
            threshold=float(agent.get("velocity_threshold", DEFAULT_THRESHOLD)),
        )

    # --------------------------------------------------------------------

    def update(self, sample: PriceSample) -> None:
        self._win.append(sample)  # deque(maxlen) descarta la más antigua

    def velocity(self) -> float | None:
        n = len(self._win)
        if n < 2:
            return None
        return (self._win[-1].price - self._win[0].price) / (n - 1)

    def evaluate(self) -> Signal:
        v = self.velocity()
        if v is None:
            return Signal.NONE
        if v > self.threshold:
            return Signal.LONG
        if v < -self.threshold:
            return Signal.SHORT
        return Signal.NONE

    def reset(self) -> None:
        self._win.clear()

    @property
    def window(self) -> tuple[PriceSample, ...]:
        return tuple(self._win)

    def __len__(self) -> int:
        return len(self._win)
