# src/iso5/core/engine.py
"""
Tick scheduler: el bucle de decisión del agente.

En cada tick:
  1. circuito en pausa -> no hace nada
  2. pide una muestra de precio (acotada por call_timeout_s)
  3. alimenta al generador de señales
  4. revisa salidas por stop-loss / take-profit con el precio nuevo
  5. en un bucket nuevo de `interval_seconds`: evalúa la señal, dimensiona,
     valida, ejecuta, actualiza el circuit breaker, registra la posición y
     anota el trade
  6. recuerda el último precio

Los ticks son single-flight: un tick() que llega mientras otro corre se
salta. Ninguna excepción sale de tick(); los fallos van a telemetry y el
siguiente tick sigue con normalidad.

El ledger de riesgo solo se escribe cuando el proveedor confirma la
ejecución, así una ejecución fallida nunca deja una posición fantasma.

Interfaz principal:
    scheduler = TickScheduler.from_config(cfg, provider=provider)
    await scheduler.run(max_ticks=None)   # bucle de periodo fijo
    await scheduler.tick()                # un paso (backtests, tests)
    scheduler.get_status()
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
import time
from typing import Any, TypeVar

from loguru import logger

from iso5.analytics.performance import PerformanceTracker
from iso5.brokers.base import ExecutionError, TradingProvider, TransientFetchError
from iso5.core.circuit import DEFAULT_MAX_LOSSES, CircuitBreaker
from iso5.core.risk import RiskConfig, RiskManager
from iso5.core.telemetry import Telemetry
from iso5.core.types import ExecutionResult, PriceSample, Side
from iso5.strategies import build_strategy
from iso5.strategies.base import Strategy

T = TypeVar("T")

# --------------------------------- Ajustes ---------------------------------


@dataclass(frozen=True)
class AgentSettings:
    initial_balance: float = 10_000.0
    tick_seconds: float = 15.0
    interval_seconds: int = 300
    max_consecutive_losses: int = DEFAULT_MAX_LOSSES
    snapshot_every: int = 10
    call_timeout_s: float | None = 10.0
    strategy: str = "momentum_claw"

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> AgentSettings:
        agent = cfg.get("agent", {})
        timeout = agent.get("call_timeout_s", cls.call_timeout_s)
        return cls(
            initial_balance=float(agent.get("initial_balance", cls.initial_balance)),
            tick_seconds=float(agent.get("tick_seconds", cls.tick_seconds)),
            interval_seconds=int(agent.get("interval_seconds", cls.interval_seconds)),
            max_consecutive_losses=int(
                agent.get("max_consecutive_losses", cls.max_consecutive_losses)
            ),
            snapshot_every=int(agent.get("snapshot_every", cls.snapshot_every)),
            call_timeout_s=float(timeout) if timeout else None,
            strategy=str(agent.get("strategy", cls.strategy)),
        )


class TickOutcome(str, Enum):
    """Qué acabó haciendo un tick."""

    PAUSED = "paused"
    SKIPPED = "skipped"  # otro tick seguía corriendo
    FETCH_FAILED = "fetch_failed"
    NO_BOUNDARY = "no_boundary"
    NO_SIGNAL = "no_signal"
    SIZE_REJECTED = "size_rejected"
    RISK_REJECTED = "risk_rejected"
    EXECUTION_FAILED = "execution_failed"
    TRADED = "traded"
    ERROR = "error"


# --------------------------------- Scheduler -------------------------------


class TickScheduler:
    def __init__(
        self,
        provider: TradingProvider,
        strategy: Strategy,
        risk: RiskManager,
        *,
        settings: AgentSettings | None = None,
        telemetry: Telemetry | None = None,
        performance: PerformanceTracker | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings if settings is not None else AgentSettings()
        self.provider = provider
        self.strategy = strategy
        self.risk = risk
        self.telemetry = telemetry if telemetry is not None else Telemetry()
        self.performance = (
            performance if performance is not None else PerformanceTracker(risk.balance)
        )
        self.circuit = CircuitBreaker(self.settings.max_consecutive_losses)
        self.clock = clock

        self.current_interval: int = -1
        self.last_price: float | None = None
        self.ticks: int = 0

        self._lock = asyncio.Lock()
        self._running = False
        self._stop_event: asyncio.Event | None = None

    @classmethod
    def from_config(
        cls,
        cfg: dict[str, Any],
        provider: TradingProvider,
        *,
        telemetry: Telemetry | None = None,
        clock: Callable[[], float] = time.time,
    ) -> TickScheduler:
        settings = AgentSettings.from_config(cfg)
        risk = RiskManager(RiskConfig.from_config(cfg), initial_balance=settings.initial_balance)
        return cls(
            provider=provider,
            strategy=build_strategy(settings.strategy, cfg),
            risk=risk,
            settings=settings,
            telemetry=telemetry,
            performance=PerformanceTracker(settings.initial_balance),
            clock=clock,
        )

    # ------------------------------ estado ------------------------------

    @property
    def paused(self) -> bool:
        return self.circuit.paused

    @property
    def running(self) -> bool:
        return self._running

    def get_status(self) -> dict[str, Any]:
        return {
            "circuit": self.circuit.snapshot(),
            "risk": self.risk.get_metrics(),
            "performance": self.performance.get_stats(),
            "last_price": self.last_price,
        }

    def resume(self) -> None:
        """Reset manual del circuit breaker."""
        self.circuit.reset()
        self.telemetry.info("circuit breaker reset, trading resumed")

    # ------------------------------ tick ------------------------------

    async def tick(self) -> TickOutcome:
        if self.circuit.paused:
            return TickOutcome.PAUSED
        if self._lock.locked():
            self.telemetry.debug("previous tick still running, skipping")
            return TickOutcome.SKIPPED

        async with self._lock:
            self.ticks += 1
            try:
                return await self._tick_body()
            except Exception as e:
                self.telemetry.error("unexpected error during tick", {"error": repr(e)})
                logger.opt(exception=e).debug("tick traceback")
                return TickOutcome.ERROR

    async def _tick_body(self) -> TickOutcome:
        try:
            sample = await self._bounded(self.provider.fetch_price(), "price fetch")
        except (TransientFetchError, asyncio.TimeoutError) as e:
            self.telemetry.warn("price fetch failed", {"error": str(e) or repr(e)})
            return TickOutcome.FETCH_FAILED

        self.strategy.update(sample)

        if self.last_price is not None:
            self._check_exits(sample)
        self.last_price = sample.price

        bucket = int(self.clock() // self.settings.interval_seconds)
        if bucket == self.current_interval:
            return TickOutcome.NO_BOUNDARY
        self.current_interval = bucket

        signal = self.strategy.evaluate()
        self.telemetry.debug(
            "interval boundary", {"bucket": bucket, "signal": signal.value, "price": sample.price}
        )
        if signal.side is None:
            return TickOutcome.NO_SIGNAL
        return await self._trade(signal.side, sample)

    def _check_exits(self, sample: PriceSample) -> None:
        report = self.risk.check_exits(sample.price)
        for pid in report.liquidated:
            self.telemetry.warn("position liquidated", {"id": pid, "price": sample.price})
        for pid in report.stopped:
            self.telemetry.info("take-profit hit", {"id": pid, "price": sample.price})

    async def _trade(self, side: Side, sample: PriceSample) -> TickOutcome:
        quantity = self.risk.calculate_position_size(sample.price)
        if quantity <= 0:
            self.telemetry.info(
                "position size is zero, skipping trade",
                {"side": side.value, "price": sample.price, "balance": self.risk.balance},
            )
            return TickOutcome.SIZE_REJECTED

        candidate = self.risk.build_position(side, sample.price, quantity, sample.timestamp)
        if candidate is None:
            self.telemetry.warn(
                "risk manager rejected position",
                {"side": side.value, "price": sample.price, "quantity": quantity},
            )
            return TickOutcome.RISK_REJECTED

        try:
            result = await self._bounded(self.provider.execute(side), "execution")
        except (ExecutionError, asyncio.TimeoutError) as e:
            self.telemetry.error(
                "execution failed", {"side": side.value, "error": str(e) or repr(e)}
            )
            return TickOutcome.EXECUTION_FAILED

        self.circuit.record(result.profit)
        position = self.risk.open_position(candidate)
        self.performance.record_trade(
            entry=position.entry_price,
            exit=self._exit_price(position.entry_price, quantity, side, result),
            side=side,
            quantity=quantity,
            timestamp=sample.timestamp,
        )
        self.telemetry.info(
            "trade executed",
            {"position": position.as_dict(), "profit": result.profit},
        )

        if self.circuit.paused:
            self.telemetry.warn("circuit breaker triggered, pausing agent", self.circuit.snapshot())

        every = self.settings.snapshot_every
        if every > 0 and self.performance.total_trades % every == 0:
            self.telemetry.info("performance snapshot", self.performance.get_stats())
        return TickOutcome.TRADED

    @staticmethod
    def _exit_price(entry: float, quantity: float, side: Side, result: ExecutionResult) -> float:
        """Salida que reporta el proveedor, o la implícita en su profit."""
        if result.exit_price is not None:
            return result.exit_price
        return entry + result.profit / quantity * side.sign

    async def _bounded(self, aw: Awaitable[T], what: str) -> T:
        timeout = self.settings.call_timeout_s
        if timeout is None:
            return await aw
        try:
            return await asyncio.wait_for(aw, timeout=timeout)
        except asyncio.TimeoutError:
            raise asyncio.TimeoutError(f"{what} timed out after {timeout:.1f}s") from None

    # ------------------------------ bucle ------------------------------

    async def run(self, max_ticks: int | None = None) -> None:
        """
        Lanza tick() cada `tick_seconds` hasta stop() o hasta `max_ticks`
        invocaciones. Cada tick corre como task para que uno lento no retrase
        la cadencia; las invocaciones solapadas las salta el guard.
        """
        self._running = True
        self._stop_event = asyncio.Event()
        pending: set[asyncio.Task[TickOutcome]] = set()
        fired = 0

        self.telemetry.info(
            "starting agent",
            {
                "tick_seconds": self.settings.tick_seconds,
                "interval_seconds": self.settings.interval_seconds,
                "balance": self.risk.balance,
            },
        )
        try:
            while self._running and (max_ticks is None or fired < max_ticks):
                task = asyncio.create_task(self.tick())
                pending.add(task)
                task.add_done_callback(pending.discard)
                fired += 1
                if max_ticks is not None and fired >= max_ticks:
                    break
                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(), timeout=self.settings.tick_seconds
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            self._running = False
            self.telemetry.info("agent stopped", self.get_status())

    def stop(self) -> None:
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
