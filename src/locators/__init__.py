"""Locator generation and confidence ranking.

Produces every structurally valid way to re-find an element and ranks
them by expected survivability under markup churn.
"""

from .generator import LocatorGenerator, escape_css, is_dynamic_value, relative_href, xpath_literal
from .models import (
    DEFAULT_DYNAMIC_PATTERNS,
    DEFAULT_STRATEGY_SCORES,
    IDENTIFIER_STRATEGIES,
    Locator,
    LocatorScoringConfig,
    LocatorStrategy,
    StrategyScore,
)

__all__ = [
    "Locator",
    "LocatorStrategy",
    "StrategyScore",
    "LocatorScoringConfig",
    "IDENTIFIER_STRATEGIES",
    "DEFAULT_STRATEGY_SCORES",
    "DEFAULT_DYNAMIC_PATTERNS",
    "LocatorGenerator",
    "escape_css",
    "xpath_literal",
    "is_dynamic_value",
    "relative_href",
]
