"""Data models for locator generation and confidence ranking."""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


class LocatorStrategy(str, Enum):
    """Strategy used to re-find an element during replay."""

    # Identifier family
    ID = "id"
    NAME = "name"
    TEST_ATTRIBUTE = "test_attribute"

    # Accessibility family
    ACCESSIBILITY = "accessibility"  # aria-label
    ROLE = "role"
    LABEL = "label"
    PLACEHOLDER = "placeholder"

    # Content family
    HREF = "href"
    LINK_TEXT = "link_text"
    BUTTON_TEXT = "button_text"
    NTH_LINK_TEXT = "nth_link_text"
    NTH_BUTTON_TEXT = "nth_button_text"
    TEXT = "text"  # text-based XPath

    # Structural family
    CSS = "css"
    RELATIVE_XPATH = "relative_xpath"
    ABSOLUTE_XPATH = "absolute_xpath"

    @property
    def is_identifier(self) -> bool:
        return self in IDENTIFIER_STRATEGIES


IDENTIFIER_STRATEGIES = frozenset({
    LocatorStrategy.ID,
    LocatorStrategy.NAME,
    LocatorStrategy.TEST_ATTRIBUTE,
})


@dataclass(frozen=True)
class Locator:
    """One candidate way of re-finding an element."""

    strategy: LocatorStrategy
    value: str
    confidence: float = 0.0
    index: Optional[int] = None  # only for nth_* strategies

    def with_confidence(self, confidence: float) -> "Locator":
        return replace(self, confidence=confidence)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "strategy": self.strategy.value,
            "value": self.value,
            "confidence": self.confidence,
        }
        if self.index is not None:
            data["index"] = self.index
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Locator":
        return cls(
            strategy=LocatorStrategy(data.get("strategy", "css")),
            value=str(data.get("value", "")),
            confidence=float(data.get("confidence", 0.0) or 0.0),
            index=data.get("index"),
        )


@dataclass(frozen=True)
class StrategyScore:
    """Base sub-scores assigned to a strategy family."""

    uniqueness: float
    stability: float
    readability: float


DEFAULT_STRATEGY_SCORES: dict[LocatorStrategy, StrategyScore] = {
    LocatorStrategy.TEST_ATTRIBUTE: StrategyScore(0.95, 0.95, 0.85),
    LocatorStrategy.ID: StrategyScore(0.95, 0.9, 0.8),
    LocatorStrategy.NAME: StrategyScore(0.85, 0.85, 0.8),
    LocatorStrategy.ACCESSIBILITY: StrategyScore(0.8, 0.85, 0.9),
    LocatorStrategy.ROLE: StrategyScore(0.6, 0.8, 0.85),
    LocatorStrategy.LABEL: StrategyScore(0.75, 0.8, 0.9),
    LocatorStrategy.PLACEHOLDER: StrategyScore(0.7, 0.7, 0.85),
    LocatorStrategy.HREF: StrategyScore(0.9, 0.8, 0.85),
    LocatorStrategy.LINK_TEXT: StrategyScore(0.85, 0.8, 0.95),
    LocatorStrategy.BUTTON_TEXT: StrategyScore(0.8, 0.75, 0.95),
    LocatorStrategy.NTH_BUTTON_TEXT: StrategyScore(0.9, 0.7, 0.85),
    LocatorStrategy.NTH_LINK_TEXT: StrategyScore(0.9, 0.7, 0.85),
    LocatorStrategy.CSS: StrategyScore(0.7, 0.65, 0.7),
    LocatorStrategy.TEXT: StrategyScore(0.75, 0.7, 0.9),
    LocatorStrategy.RELATIVE_XPATH: StrategyScore(0.75, 0.55, 0.5),
    LocatorStrategy.ABSOLUTE_XPATH: StrategyScore(0.95, 0.15, 0.1),
}

# Framework-generated ids, scoped-style hashes, hash-like and timestamp-like runs
DEFAULT_DYNAMIC_PATTERNS: tuple[str, ...] = (
    r"^ng-",
    r"^data-reactid",
    r"^data-v-",
    r"^_ngcontent",
    r"^_nghost",
    r"ember\d+",
    r"^js-",
    r"(?i)[0-9a-f]{8,}",
    r"\d{10,}",
)


@dataclass
class LocatorScoringConfig:
    """Tunable weights and filters for confidence ranking.

    Example:
        config = LocatorScoringConfig(stability_weight=0.5, readability_weight=0.1)
        generator = LocatorGenerator(config)
    """

    uniqueness_weight: float = 0.40
    stability_weight: float = 0.35
    readability_weight: float = 0.25

    strategy_scores: dict[LocatorStrategy, StrategyScore] = field(
        default_factory=lambda: dict(DEFAULT_STRATEGY_SCORES)
    )
    fallback_score: StrategyScore = field(
        default_factory=lambda: StrategyScore(0.5, 0.5, 0.5)
    )
    # Bare single-tag CSS selectors ("a", "div") match many elements
    bare_tag_score: StrategyScore = field(
        default_factory=lambda: StrategyScore(0.1, 0.15, 0.7)
    )

    dynamic_patterns: tuple[str, ...] = DEFAULT_DYNAMIC_PATTERNS
    dynamic_stability_factor: float = 0.3

    long_value_threshold: int = 100
    long_value_readability_factor: float = 0.5
    long_value_stability_factor: float = 0.7

    max_text_length: int = 80
    text_xpath_max_length: int = 100
    exact_text_xpath_length: int = 50
    contains_text_prefix: int = 40
    max_stable_classes: int = 3

    test_attributes: tuple[str, ...] = (
        "data-testid",
        "data-cy",
        "data-test",
        "data-test-id",
        "data-automation-id",
        "data-qa",
    )

    precision: int = 3

    def __post_init__(self):
        self._compiled = [re.compile(p) for p in self.dynamic_patterns]

    def score_for(self, strategy: LocatorStrategy) -> StrategyScore:
        return self.strategy_scores.get(strategy, self.fallback_score)

    def is_dynamic(self, value: Optional[str]) -> bool:
        """Check whether a value looks framework-generated."""
        if not value:
            return False
        return any(pattern.search(value) for pattern in self._compiled)
