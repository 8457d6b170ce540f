"""iso5: velocity-momentum trading agent with risk limits and a loss circuit breaker."""

__version__ = "0.1.0"
