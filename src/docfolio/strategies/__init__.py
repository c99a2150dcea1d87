"""Merge strategy registry."""

from datetime import date
from typing import Optional

from ..exceptions import ValidationError
from ..models import STRATEGY_NAMES
from .base import MergeStrategy
from .comprehensive import ComprehensiveMerge
from .simple import SimpleMerge
from .structured import StructuredConsolidation

STRATEGIES = {
    "simple": SimpleMerge,
    "structured": StructuredConsolidation,
    "comprehensive": ComprehensiveMerge,
}

# Names used by older tooling
ALIASES = {
    "simple_merge": "simple",
    "structured_consolidation": "structured",
    "comprehensive_merge": "comprehensive",
}


def canonical_strategy_name(name: str) -> str:
    """Map a strategy name or alias to its canonical name."""
    key = (name or "").strip().lower()
    key = ALIASES.get(key, key)
    if key not in STRATEGIES:
        raise ValidationError(
            f"Unknown strategy '{name}'. Choose from: {', '.join(STRATEGY_NAMES)}",
            strategy=name,
        )
    return key


def get_strategy(name: str, today: Optional[date] = None) -> MergeStrategy:
    return STRATEGIES[canonical_strategy_name(name)](today=today)


__all__ = [
    "ALIASES",
    "STRATEGIES",
    "ComprehensiveMerge",
    "MergeStrategy",
    "SimpleMerge",
    "StructuredConsolidation",
    "canonical_strategy_name",
    "get_strategy",
]
