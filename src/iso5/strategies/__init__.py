# src/iso5/strategies/__init__.py
"""
Signal generators. Importing the package registers the built-in strategies.
"""

from __future__ import annotations

from iso5.strategies.base import (
    Strategy,
    build_strategy,
    get_strategy_class,
    list_strategies,
    register_strategy,
)
from iso5.strategies.momentum_claw import MomentumClaw

__all__ = [
    "Strategy",
    "MomentumClaw",
    "register_strategy",
    "get_strategy_class",
    "list_strategies",
    "build_strategy",
]
