# src/iso5/brokers/__init__.py
"""Market data / execution providers."""

from __future__ import annotations

from typing import Any

from iso5.brokers.base import (
    ExecutionError,
    ExecutionProvider,
    MarketDataProvider,
    ProviderError,
    ReplayExhausted,
    TradingProvider,
    TransientFetchError,
)
from iso5.brokers.paper import PaperProvider
from iso5.brokers.polymarket import PolymarketProvider
from iso5.brokers.replay import ReplayProvider

_PROVIDERS: dict[str, Any] = {
    "paper": PaperProvider,
    "polymarket": PolymarketProvider,
}


def build_provider(cfg: dict[str, Any]) -> TradingProvider:
    """Builds the provider named in `provider.name`."""
    name = str(cfg.get("provider", {}).get("name", "paper")).lower()
    try:
        cls = _PROVIDERS[name]
    except KeyError:
        raise ValueError(f"Unknown provider '{name}'. Options: {sorted(_PROVIDERS)}") from None
    return cls.from_config(cfg)


__all__ = [
    "ProviderError",
    "TransientFetchError",
    "ExecutionError",
    "ReplayExhausted",
    "MarketDataProvider",
    "ExecutionProvider",
    "TradingProvider",
    "PaperProvider",
    "PolymarketProvider",
    "ReplayProvider",
    "build_provider",
]
