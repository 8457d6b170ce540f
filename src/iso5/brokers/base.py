# src/iso5/brokers/base.py
"""
Contratos entre el scheduler y los proveedores de datos de mercado / ejecución.

Este módulo define:
- Protocolos `MarketDataProvider`, `ExecutionProvider` y `TradingProvider`.
- Errores propios de los proveedores para que el scheduler distinga fallos
  transitorios de datos de ejecuciones fallidas.

Diseño:
- Este archivo no depende del resto del paquete salvo de `iso5.core.types`
  para evitar imports circulares.
- Las llamadas son async; los adapters bloqueantes hacen su I/O en un hilo.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from iso5.core.types import ExecutionResult, PriceSample, Side

# =========================
# Errores
# =========================


class ProviderError(Exception):
    """Error base de los adapters de proveedor."""


class TransientFetchError(ProviderError):
    """Fuente de precio inalcanzable o con respuesta inválida."""


class ExecutionError(ProviderError):
    """Falló el envío de la orden; no se ejecutó nada."""


class ReplayExhausted(TransientFetchError):
    """El replay histórico no tiene más muestras."""


# =========================
# Protocolos
# =========================


@runtime_checkable
class MarketDataProvider(Protocol):
    async def fetch_price(self) -> PriceSample:
        """Una muestra de precio. Lanza TransientFetchError si falla."""
        ...


@runtime_checkable
class ExecutionProvider(Protocol):
    async def execute(self, side: Side) -> ExecutionResult:
        """Ejecuta un trade en `side`. Lanza ExecutionError si falla."""
        ...


@runtime_checkable
class TradingProvider(MarketDataProvider, ExecutionProvider, Protocol):
    """Proveedor que implementa tanto la consulta de precio como la ejecución."""


__all__ = [
    "ProviderError",
    "TransientFetchError",
    "ExecutionError",
    "ReplayExhausted",
    "MarketDataProvider",
    "ExecutionProvider",
    "TradingProvider",
]
