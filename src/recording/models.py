"""Data models for interaction capture and step synthesis."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from src.locators.models import Locator

DEFAULT_TEXT_MAX_CHARS = 200

TEST_ATTRIBUTES = (
    "data-testid",
    "data-cy",
    "data-test",
    "data-test-id",
    "data-automation-id",
    "data-qa",
)


class ActionKind(str, Enum):
    """Low-level action reported by the capture surface."""

    CLICK = "click"
    INPUT = "input"
    CHANGE = "change"
    SELECT = "select"
    TOGGLE = "toggle"
    SUBMIT = "submit"
    SCROLL = "scroll"
    HOVER = "hover"
    DRAG = "drag"
    MODAL = "modal"
    NAVIGATE = "navigate"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "ActionKind":
        """Map a raw action string onto a known kind, never raising."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text in ACTION_ALIASES:
            return ACTION_ALIASES[text]
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


# Date/time pickers report their own action names
ACTION_ALIASES = {
    "set_date": ActionKind.CHANGE,
    "set_time": ActionKind.CHANGE,
    "set_datetime": ActionKind.CHANGE,
    "type": ActionKind.INPUT,
    "dblclick": ActionKind.CLICK,
}


class ControlKind(str, Enum):
    """Closed classification of an element's UI role."""

    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    SELECT = "select"
    SLIDER = "slider"
    TOGGLE = "toggle"
    COLOR = "color"
    FILE = "file"
    DATE_TIME = "date_time"
    CONTENTEDITABLE = "contenteditable"
    BUTTON = "button"
    LINK = "link"
    UNKNOWN = "unknown"

    @property
    def is_text_entry(self) -> bool:
        return self in TEXT_ENTRY_KINDS


TEXT_ENTRY_KINDS = frozenset({
    ControlKind.TEXT,
    ControlKind.DATE_TIME,
    ControlKind.CONTENTEDITABLE,
})


class StepKind(str, Enum):
    """Classified intent of a recorded step."""

    NAVIGATE = "navigate"
    CLICK = "click"
    TYPE = "type"
    SELECT = "select"
    TOGGLE = "toggle"
    RADIO = "radio"
    SLIDER = "slider"
    COLOR = "color"
    FILE = "file"
    SET_DATE = "set_date"
    SUBMIT = "submit"
    SCROLL = "scroll"
    HOVER = "hover"
    DRAG = "drag"
    MODAL = "modal"

    @classmethod
    def parse(cls, value: Any) -> "StepKind":
        try:
            return cls(str(value))
        except ValueError:
            return cls.CLICK

    @property
    def is_text_entry(self) -> bool:
        return self in (StepKind.TYPE, StepKind.SET_DATE)


class WaitKind(str, Enum):
    """Condition a replay step must satisfy before acting."""

    PRESENT = "present"
    VISIBLE = "visible"
    CLICKABLE = "clickable"
    NETWORK_IDLE = "network_idle"
    NAVIGATION = "navigation"


@dataclass(frozen=True)
class WaitSpec:
    """Wait condition and timeout inferred at synthesis time."""

    kind: WaitKind = WaitKind.VISIBLE
    timeout_ms: int = 5000

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "timeout_ms": self.timeout_ms}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "WaitSpec":
        if not data:
            return cls()
        try:
            kind = WaitKind(data.get("kind", WaitKind.VISIBLE.value))
        except ValueError:
            kind = WaitKind.VISIBLE
        return cls(kind=kind, timeout_ms=int(data.get("timeout_ms", 5000) or 5000))


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first non-empty value among several key spellings."""
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return default


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_bool(value: Any, default: Optional[bool] = False) -> Optional[bool]:
    """Parse booleans that may arrive as strings or numbers."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "1", "yes", "plaintext-only"):
            return True
        if text in ("false", "0", "no"):
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class ElementDescriptor:
    """Structural snapshot of an interacted element.

    ``control_kind`` is derived once from tag/type/role/class heuristics
    when the descriptor is built and never recomputed.
    """

    tag: str = ""
    type: Optional[str] = None
    role: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    aria_label: Optional[str] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    text: Optional[str] = None
    title: Optional[str] = None
    value: Optional[str] = None
    href: Optional[str] = None
    classes: tuple[str, ...] = ()
    test_attributes: dict[str, str] = field(default_factory=dict, compare=False)
    tag_index: Optional[int] = None
    xpath: Optional[str] = None
    absolute_xpath: Optional[str] = None
    content_editable: bool = False
    checked: Optional[bool] = None
    control_kind: ControlKind = field(init=False, compare=False)

    def __post_init__(self):
        from .control_kind import classify_control

        object.__setattr__(self, "classes", tuple(self.classes or ()))
        object.__setattr__(self, "control_kind", classify_control(self))

    @property
    def identity(self) -> str:
        """Stable key used to correlate events on the same element."""
        if self.absolute_xpath:
            return self.absolute_xpath
        if self.xpath:
            return self.xpath
        if self.id:
            return f"#{self.id}"
        return "|".join([
            self.tag or "",
            self.name or "",
            self.type or "",
            str(self.tag_index if self.tag_index is not None else ""),
            (self.text or "")[:40],
        ])

    @classmethod
    def from_dict(
        cls,
        data: Optional[dict],
        text_max_chars: int = DEFAULT_TEXT_MAX_CHARS,
    ) -> "ElementDescriptor":
        """Build a descriptor from a capture payload.

        Accepts snake_case or camelCase keys. Never raises: missing or
        malformed data yields an empty descriptor.
        """
        if not isinstance(data, dict):
            return cls()

        classes = data.get("classes") or data.get("classList") or data.get("className") or ()
        if isinstance(classes, str):
            classes = classes.split()

        test_attributes = {}
        raw_test = data.get("test_attributes") or data.get("testAttributes") or {}
        attributes = data.get("attributes") or {}
        for attr in TEST_ATTRIBUTES:
            value = None
            if isinstance(raw_test, dict):
                value = raw_test.get(attr)
            if not value and isinstance(attributes, dict):
                value = attributes.get(attr)
            if value:
                test_attributes[attr] = str(value)

        text = _pick(data, "text", "textContent", "innerText")
        if text is not None:
            text = str(text).strip()[:text_max_chars]

        checked = data.get("checked")

        return cls(
            tag=str(_pick(data, "tag", "tagName", default="")).lower(),
            type=_lower_or_none(_pick(data, "type")),
            role=_lower_or_none(_pick(data, "role")),
            id=_pick(data, "id"),
            name=_pick(data, "name"),
            aria_label=_pick(data, "aria_label", "ariaLabel"),
            label=_pick(data, "label", "labelText"),
            placeholder=_pick(data, "placeholder"),
            text=text or None,
            title=_pick(data, "title"),
            value=_str_or_none(data.get("value")),
            href=_pick(data, "href"),
            classes=tuple(str(c) for c in classes if c),
            test_attributes=test_attributes,
            tag_index=_as_int(_pick(data, "tag_index", "tagIndex")),
            xpath=_pick(data, "xpath", "relativeXPath"),
            absolute_xpath=_pick(data, "absolute_xpath", "absoluteXPath"),
            content_editable=bool(_as_bool(_pick(data, "content_editable", "isContentEditable"))),
            checked=_as_bool(checked, default=None),
        )

    def to_dict(self) -> dict:
        data = {
            "tag": self.tag,
            "type": self.type,
            "role": self.role,
            "id": self.id,
            "name": self.name,
            "aria_label": self.aria_label,
            "label": self.label,
            "placeholder": self.placeholder,
            "text": self.text,
            "title": self.title,
            "value": self.value,
            "href": self.href,
            "classes": list(self.classes),
            "test_attributes": dict(self.test_attributes),
            "tag_index": self.tag_index,
            "xpath": self.xpath,
            "absolute_xpath": self.absolute_xpath,
            "content_editable": self.content_editable,
            "checked": self.checked,
            "control_kind": self.control_kind.value,
        }
        return {k: v for k, v in data.items() if v not in (None, "", [], {})}


def _lower_or_none(value: Any) -> Optional[str]:
    return str(value).lower() if value not in (None, "") else None


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class RawInteractionEvent:
    """One low-level notification from the capture surface. Never persisted."""

    action: ActionKind
    element: ElementDescriptor = field(default_factory=ElementDescriptor)
    value_before: Any = None
    value_after: Any = None
    timestamp: float = 0.0  # ms, page clock
    interaction_type: str = ""
    metadata: dict = field(default_factory=dict)
    raw_action: str = ""

    @property
    def url(self) -> Optional[str]:
        return self.metadata.get("url")

    @classmethod
    def from_dict(
        cls,
        data: Optional[dict],
        text_max_chars: int = DEFAULT_TEXT_MAX_CHARS,
    ) -> "RawInteractionEvent":
        """Create an event from a capture payload.

        Unknown action strings map to ``ActionKind.UNKNOWN``.
        """
        if not isinstance(data, dict):
            data = {}

        raw_action = str(_pick(data, "action", "type", default="") or "")
        metadata = data.get("metadata") or data.get("meta") or {}
        if not isinstance(metadata, dict):
            metadata = {"value": metadata}
        else:
            metadata = dict(metadata)
        if data.get("url") and "url" not in metadata:
            metadata["url"] = data["url"]

        return cls(
            action=ActionKind.parse(raw_action),
            element=ElementDescriptor.from_dict(
                data.get("element") or data.get("target"), text_max_chars
            ),
            value_before=_pick(data, "value_before", "valueBefore", "oldValue"),
            value_after=_pick(data, "value_after", "valueAfter", "value", "newValue"),
            timestamp=_as_float(data.get("timestamp")),
            interaction_type=str(_pick(data, "interaction_type", "interactionType", default="")),
            metadata=metadata,
            raw_action=raw_action.lower(),
        )


@dataclass
class Step:
    """Canonical, persisted unit of recorded intent."""

    order: int
    kind: StepKind
    description: str = ""
    element: Optional[ElementDescriptor] = None
    locators: list[Locator] = field(default_factory=list)
    test_data: dict[str, Any] = field(default_factory=dict)
    wait: WaitSpec = field(default_factory=WaitSpec)
    enabled: bool = True
    url: Optional[str] = None
    id: str = field(default_factory=lambda: f"step_{uuid.uuid4().hex[:12]}")
    timestamp: float = 0.0

    @property
    def test_key(self) -> Optional[str]:
        return next(iter(self.test_data), None)

    @property
    def test_value(self) -> Any:
        key = self.test_key
        return self.test_data[key] if key is not None else None

    @property
    def best_locator(self) -> Optional[Locator]:
        return self.locators[0] if self.locators else None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "order": self.order,
            "kind": self.kind.value,
            "description": self.description,
            "locators": [loc.to_dict() for loc in self.locators],
            "test_data": dict(self.test_data),
            "wait": self.wait.to_dict(),
            "enabled": self.enabled,
            "timestamp": self.timestamp,
        }
        if self.element is not None:
            data["element"] = self.element.to_dict()
        if self.url:
            data["url"] = self.url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Step":
        element = data.get("element")
        return cls(
            id=data.get("id") or f"step_{uuid.uuid4().hex[:12]}",
            order=int(data.get("order", 0) or 0),
            kind=StepKind.parse(data.get("kind", StepKind.CLICK.value)),
            description=data.get("description", ""),
            element=ElementDescriptor.from_dict(element) if element else None,
            locators=[Locator.from_dict(loc) for loc in data.get("locators", [])],
            test_data=dict(data.get("test_data", {})),
            wait=WaitSpec.from_dict(data.get("wait")),
            enabled=bool(_as_bool(data.get("enabled", True), default=True)),
            url=data.get("url"),
            timestamp=_as_float(data.get("timestamp")),
        )
