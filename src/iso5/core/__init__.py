"""Core of the agent: types, risk ledger, circuit breaker, telemetry and the tick scheduler.

Submodules are imported directly (`from iso5.core.engine import TickScheduler`);
this package does not re-export them so `iso5.strategies` can depend on
`iso5.core.types` without an import cycle.
"""
