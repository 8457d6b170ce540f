# ============================================================
# src/iso5/core/config_loader.py — Cargador central de configuración
# ------------------------------------------------------------
# Carga config.yaml (src/iso5/config/config.yaml salvo que se
# pase otra ruta), aplica encima los overrides de .env / entorno
# y comprueba que existen las claves que el agente necesita.
#
#   from iso5.core.config_loader import get_config, reload_config
#   cfg = get_config()
#   tick = cfg["agent"]["tick_seconds"]
#   cfg = reload_config()          # tras editar el YAML
#
# Aquí NO se configura el logging; cada llamador loguea lo que
# necesite una vez ejecutado init_logger().
# ============================================================

from __future__ import annotations

from collections.abc import Callable, Sequence
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[1] / "config" / "config.yaml"

_MISSING = object()

# Última config cargada desde DEFAULT_CONFIG_PATH; reload_config() la invalida.
_cached: dict[str, Any] | None = None


def _as_int(raw: str) -> int:
    return int(float(raw))


# ENV_VAR -> (ruta en config.yaml, conversor)
_ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "MODE": (("environment", "mode"), str),
    "LOG_LEVEL": (("environment", "log_level"), str.upper),
    "LOG_DIR": (("environment", "log_dir"), str),
    "TICK_SECONDS": (("agent", "tick_seconds"), float),
    "INTERVAL_SECONDS": (("agent", "interval_seconds"), _as_int),
    "INITIAL_BALANCE": (("agent", "initial_balance"), float),
    "CALL_TIMEOUT_S": (("agent", "call_timeout_s"), float),
    "PROVIDER": (("provider", "name"), str.lower),
    "POLY_API_KEY": (("provider", "api_key"), str),
    "POLY_BASE_URL": (("provider", "base_url"), str),
}

REQUIRED_KEYS: tuple[str, ...] = (
    "environment.mode",
    "environment.log_level",
    "agent.initial_balance",
    "agent.tick_seconds",
    "agent.interval_seconds",
    "risk.risk_per_trade",
    "risk.max_drawdown",
    "risk.max_position_size",
    "risk.stop_loss_percent",
    "risk.take_profit_percent",
    "provider.name",
)


# ------------------------------------------------------------
# Helpers de dicts anidados
# ------------------------------------------------------------
def _deep_get(node: Any, keys: Sequence[str], default: Any = _MISSING) -> Any:
    for key in keys:
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def _deep_set(cfg: dict[str, Any], keys: Sequence[str], value: Any) -> None:
    *parents, leaf = keys
    node = cfg
    for key in parents:
        child = node.get(key)
        if not isinstance(child, dict):
            child = node[key] = {}
        node = child
    node[leaf] = value


# ------------------------------------------------------------
# Pasos de carga
# ------------------------------------------------------------
def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path.resolve()}")
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"The YAML root must be a mapping: {path}")
    return data


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    """
    El entorno manda sobre el YAML. Un valor que no convierte conserva el
    valor del YAML en lugar de tumbar toda la carga.
    """
    load_dotenv(override=False)

    for env_var, (keys, convert) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw is None:
            continue
        try:
            value = convert(raw.strip())
        except ValueError:
            continue
        _deep_set(cfg, keys, value)


def _validate(cfg: dict[str, Any]) -> None:
    missing = [k for k in REQUIRED_KEYS if _deep_get(cfg, k.split(".")) is _MISSING]
    if missing:
        raise ValueError(
            "Missing required keys in config.yaml (or after overrides): " + ", ".join(missing)
        )


# ------------------------------------------------------------
# API pública
# ------------------------------------------------------------
def get_config(path: Path | str | None = None, use_cache: bool = True) -> dict[str, Any]:
    """
    Configuración del agente como dict plano.

    Solo se cachea el archivo por defecto; un `path` explícito se relee siempre.
    """
    global _cached
    if path is None and use_cache and _cached is not None:
        return _cached

    cfg = _read_yaml(Path(path) if path else DEFAULT_CONFIG_PATH)
    _apply_env_overrides(cfg)
    _validate(cfg)

    if path is None:
        _cached = cfg
    return cfg


def reload_config(path: Path | str | None = None) -> dict[str, Any]:
    global _cached
    _cached = None
    return get_config(path=path, use_cache=False)


def default_config() -> dict[str, Any]:
    """El config.yaml incluido tal cual (sin overrides del entorno)."""
    return _read_yaml(DEFAULT_CONFIG_PATH)


def get_nested(cfg: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """get_nested(cfg, "agent", "tick_seconds") -> valor, o `default` si no existe."""
    return _deep_get(cfg, keys, default)
