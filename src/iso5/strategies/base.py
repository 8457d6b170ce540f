# src/iso5/strategies/base.py
"""
Interfaz de los generadores de señales y registro nombre -> clase.

- `Strategy`: update(sample) recibe una muestra de precio; evaluate() devuelve
  una Signal y no debe cambiar ningún estado.
- `register_strategy("name")` decora una subclase para que el scheduler pueda
  construirla desde `agent.strategy` en config.yaml.
"""

from __future__ import annotations

from typing import Any, ClassVar

from iso5.core.types import PriceSample, Signal


class Strategy:
    name: ClassVar[str] = "strategy"

    def update(self, sample: PriceSample) -> None:
        raise NotImplementedError

    def evaluate(self) -> Signal:
        raise NotImplementedError

    def reset(self) -> None:
        """Descarta el histórico acumulado."""

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> Strategy:
        return cls()


# ------------------------------- Registro ---------------------------------

_STRATEGIES: dict[str, type[Strategy]] = {}


def register_strategy(name: str, cls: type[Strategy] | None = None):
    """
    @register_strategy("momentum_claw") sobre una clase, o
    register_strategy("alias", SomeStrategy) como llamada directa.
    """
    key = name.strip().lower()

    def _add(target):
        _STRATEGIES[key] = target
        return target

    if cls is not None:
        return _add(cls)
    return _add


def get_strategy_class(name: str) -> type[Strategy]:
    try:
        return _STRATEGIES[name.strip().lower()]
    except KeyError:
        raise KeyError(
            f"Strategy not registered: {name!r}. Options: {sorted(_STRATEGIES)}"
        ) from None


def list_strategies() -> list[str]:
    return sorted(_STRATEGIES)


def build_strategy(name: str, cfg: dict[str, Any] | None = None) -> Strategy:
    return get_strategy_class(name).from_config(cfg or {})


__all__ = [
    "Strategy",
    "register_strategy",
    "get_strategy_class",
    "list_strategies",
    "build_strategy",
]
