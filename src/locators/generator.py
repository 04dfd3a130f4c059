"""Locator generation and confidence ranking.

Turns an element snapshot into every structurally valid locator that could
re-find it, then scores each one by expected survivability under markup
churn. Pure and deterministic: no state, no I/O.

Example:
    generator = LocatorGenerator()
    locators = generator.generate_ranked(descriptor)
    best = locators[0]
"""

import re
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse

import structlog

from .models import Locator, LocatorScoringConfig, LocatorStrategy

if TYPE_CHECKING:
    from src.recording.models import ElementDescriptor

logger = structlog.get_logger()

_BARE_TAG = re.compile(r"^[a-z]+$", re.IGNORECASE)
_CSS_SPECIAL = re.compile(r"""([!"#$%&'()*+,./:;<=>?@\[\]^`{|}~\\])""")
_WHITESPACE = re.compile(r"\s+")

BUTTON_ROLES = ("button",)


def escape_css(value: str) -> str:
    """Escape a value for use inside a CSS selector."""
    return _CSS_SPECIAL.sub(r"\\\1", value)


def xpath_literal(value: str) -> str:
    """Quote a value as an XPath string literal."""
    if '"' not in value:
        return f'"{value}"'
    if "'" not in value:
        return f"'{value}'"
    parts = value.split('"')
    return "concat(" + ", '\"', ".join(f'"{p}"' for p in parts) + ")"


def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace runs and trim."""
    return _WHITESPACE.sub(" ", text or "").strip()


def relative_href(href: str) -> str:
    """Reduce an absolute URL to path + query + fragment for portability."""
    parsed = urlparse(href)
    if not parsed.scheme:
        return href
    rel = parsed.path or ""
    if parsed.query:
        rel += f"?{parsed.query}"
    if parsed.fragment:
        rel += f"#{parsed.fragment}"
    return rel


class LocatorGenerator:
    """Generates and ranks locators for an element descriptor."""

    def __init__(self, config: Optional[LocatorScoringConfig] = None):
        self.config = config or LocatorScoringConfig()
        self.log = logger.bind(component="locator_generator")

    def is_dynamic(self, value: Optional[str]) -> bool:
        return self.config.is_dynamic(value)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(self, el: "ElementDescriptor") -> list[Locator]:
        """Enumerate every applicable locator, unscored, in emission order."""
        if el is None:
            return []

        cfg = self.config
        locators: list[Locator] = []
        tag = (el.tag or "").lower()
        text = clean_text(el.text)
        is_button = tag == "button" or (el.role or "").lower() in BUTTON_ROLES
        is_link = tag == "a"

        # Identifier family: dynamic values are excluded, not down-scored
        if el.id and not self.is_dynamic(el.id):
            locators.append(Locator(LocatorStrategy.ID, el.id))

        if el.name and not self.is_dynamic(el.name):
            locators.append(Locator(LocatorStrategy.NAME, el.name))

        # Accessibility family
        if el.aria_label:
            locators.append(Locator(LocatorStrategy.ACCESSIBILITY, el.aria_label))

        if el.role:
            role_selector = f'[role="{escape_css(el.role)}"]'
            if el.aria_label:
                role_selector += f'[aria-label="{escape_css(el.aria_label)}"]'
            locators.append(Locator(LocatorStrategy.ROLE, role_selector))

        if el.label:
            label = clean_text(el.label)
            if label:
                locators.append(Locator(LocatorStrategy.LABEL, label))

        if el.placeholder:
            locators.append(Locator(
                LocatorStrategy.PLACEHOLDER,
                f'[placeholder="{escape_css(el.placeholder)}"]',
            ))

        # Content family
        if is_link and el.href:
            href = relative_href(el.href)
            if href:
                locators.append(Locator(LocatorStrategy.HREF, f'a[href="{escape_css(href)}"]'))

        if text and len(text) < cfg.max_text_length:
            if is_link:
                locators.append(Locator(LocatorStrategy.LINK_TEXT, text))
            if is_button:
                locators.append(Locator(LocatorStrategy.BUTTON_TEXT, text))

            # Index-qualified variants for elements sharing identical text
            if el.tag_index is not None:
                if is_button:
                    locators.append(Locator(LocatorStrategy.NTH_BUTTON_TEXT, text, index=el.tag_index))
                if is_link:
                    locators.append(Locator(LocatorStrategy.NTH_LINK_TEXT, text, index=el.tag_index))

        # Structural family
        css = self.build_css_selector(el)
        if css:
            locators.append(Locator(LocatorStrategy.CSS, css))

        if text and len(text) < cfg.text_xpath_max_length:
            locators.append(Locator(LocatorStrategy.TEXT, self.build_text_xpath(tag, text)))

        if el.xpath:
            locators.append(Locator(LocatorStrategy.RELATIVE_XPATH, el.xpath))

        for attr in cfg.test_attributes:
            attr_value = el.test_attributes.get(attr)
            if attr_value and not self.is_dynamic(attr_value):
                locators.append(Locator(
                    LocatorStrategy.TEST_ATTRIBUTE,
                    f'[{attr}="{escape_css(attr_value)}"]',
                ))

        if el.absolute_xpath:
            locators.append(Locator(LocatorStrategy.ABSOLUTE_XPATH, el.absolute_xpath))

        return locators

    def build_css_selector(self, el: "ElementDescriptor") -> Optional[str]:
        """Compose a CSS selector from tag, stable classes and attributes."""
        tag = (el.tag or "").lower()
        selector = tag

        if el.id and not self.is_dynamic(el.id):
            return f"{selector}#{escape_css(el.id)}"

        stable = [c for c in el.classes if len(c) > 1 and not self.is_dynamic(c)]
        if stable:
            selector += "".join(f".{escape_css(c)}" for c in stable[: self.config.max_stable_classes])

        if tag in ("input", "button") and el.type:
            selector += f'[type="{escape_css(el.type)}"]'

        if tag == "a" and el.href:
            href = relative_href(el.href)
            if href and href != "/" and (href.startswith("/") or "://" not in href):
                selector += f'[href="{escape_css(href)}"]'

        if selector and _BARE_TAG.match(selector) and el.tag_index is not None:
            selector += f":nth-of-type({el.tag_index + 1})"

        return selector or None

    def build_text_xpath(self, tag: str, text: str) -> str:
        """Build an XPath matching on visible text."""
        tag = tag or "*"
        cfg = self.config
        if len(text) < cfg.exact_text_xpath_length:
            return f"//{tag}[normalize-space(.)={xpath_literal(text)}]"
        return f"//{tag}[contains(normalize-space(.), {xpath_literal(text[: cfg.contains_text_prefix])})]"

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    def score(self, locator: Locator) -> float:
        """Compute a locator's final confidence in [0, 1]."""
        cfg = self.config

        if locator.strategy == LocatorStrategy.CSS and _BARE_TAG.match(locator.value):
            base = cfg.bare_tag_score
        else:
            base = cfg.score_for(locator.strategy)

        uniqueness = base.uniqueness
        stability = base.stability
        readability = base.readability

        if self.is_dynamic(locator.value):
            stability *= cfg.dynamic_stability_factor

        if len(locator.value) > cfg.long_value_threshold:
            readability *= cfg.long_value_readability_factor
            stability *= cfg.long_value_stability_factor

        confidence = (
            uniqueness * cfg.uniqueness_weight
            + stability * cfg.stability_weight
            + readability * cfg.readability_weight
        )
        return round(min(max(confidence, 0.0), 1.0), cfg.precision)

    def rank(self, locators: list[Locator]) -> list[Locator]:
        """Score and sort locators by confidence, highest first.

        The sort is stable, so generation order breaks ties.
        """
        scored = [loc.with_confidence(self.score(loc)) for loc in locators]
        return sorted(scored, key=lambda loc: loc.confidence, reverse=True)

    def generate_ranked(self, el: "ElementDescriptor") -> list[Locator]:
        ranked = self.rank(self.generate(el))
        self.log.debug(
            "Locators generated",
            tag=getattr(el, "tag", ""),
            count=len(ranked),
            best=ranked[0].strategy.value if ranked else None,
        )
        return ranked


def is_dynamic_value(value: Optional[str], config: Optional[LocatorScoringConfig] = None) -> bool:
    """Convenience check against the default dynamic-value pattern family."""
    return (config or LocatorScoringConfig()).is_dynamic(value)
