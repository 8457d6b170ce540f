# src/iso5/core/circuit.py
"""
Consecutive-loss circuit breaker.

`register_result` is the pure transition; `CircuitBreaker` holds the current
state for the scheduler. Once paused, the breaker stays paused until reset().
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from loguru import logger

DEFAULT_MAX_LOSSES = 3


@dataclass(frozen=True)
class CircuitBreakerState:
    consecutive_losses: int = 0
    paused: bool = False


def register_result(
    state: CircuitBreakerState, profit: float, threshold: int = DEFAULT_MAX_LOSSES
) -> CircuitBreakerState:
    """Negative profit counts a loss; anything else resets the streak."""
    if profit < 0:
        losses = state.consecutive_losses + 1
        return replace(state, consecutive_losses=losses, paused=state.paused or losses >= threshold)
    return replace(state, consecutive_losses=0)


class CircuitBreaker:
    def __init__(self, max_losses: int = DEFAULT_MAX_LOSSES) -> None:
        if max_losses < 1:
            raise ValueError("max_losses must be >= 1")
        self.max_losses = int(max_losses)
        self.state = CircuitBreakerState()

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def losses(self) -> int:
        return self.state.consecutive_losses

    def record(self, profit: float) -> CircuitBreakerState:
        was_paused = self.state.paused
        self.state = register_result(self.state, profit, self.max_losses)
        if self.state.paused and not was_paused:
            logger.warning(
                f"Circuit breaker triggered after {self.state.consecutive_losses} "
                "consecutive losses, pausing agent"
            )
        return self.state

    def reset(self) -> None:
        self.state = CircuitBreakerState()
        logger.info("Circuit breaker reset")

    def snapshot(self) -> dict[str, Any]:
        return {"paused": self.state.paused, "losses": self.state.consecutive_losses}
