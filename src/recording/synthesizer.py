"""Step synthesis from raw interaction events.

Turns a noisy stream of low-level browser notifications into a minimal
sequence of canonical Steps:

1. Clicks on text-entry controls are held in a pending buffer. A follow-up
   edit on the same element discards them; any other action, or the dedup
   window expiring, turns them into click Steps.
2. A trailing-window ledger drops repeated toggles and the input/change
   echo a text edit produces.
3. Further edits to the most recent text Step update it in place.

Surviving events are located, described, given test data and a wait
condition, and handed to ``on_step``.
"""

import re
import time
from typing import Any, Callable, Optional, Union

import structlog

from src.locators.generator import LocatorGenerator

from .classifier import IntentClassifier
from .coalescer import Coalescer
from .dedup import DedupState
from .models import (
    ActionKind,
    ControlKind,
    ElementDescriptor,
    RawInteractionEvent,
    Step,
    StepKind,
    WaitKind,
    WaitSpec,
)

logger = structlog.get_logger()

_KEY_SANITIZE = re.compile(r"[^a-zA-Z0-9_]")

StepCallback = Callable[[Step], None]


def element_label(el: Optional[ElementDescriptor], max_chars: int = 50) -> str:
    """Best human-readable name for an element, truncated."""
    if el is None:
        return "element"
    label = (
        el.aria_label
        or el.label
        or el.placeholder
        or (el.text or "").strip()
        or el.name
        or el.id
        or el.tag
        or "element"
    )
    label = " ".join(str(label).split())
    if len(label) > max_chars:
        label = label[: max_chars - 3] + "..."
    return label


def describe_step(
    kind: StepKind,
    el: Optional[ElementDescriptor],
    value: Any = None,
    url: Optional[str] = None,
    max_chars: int = 50,
    action_name: str = "",
) -> str:
    """Render the description shown in the step list."""
    label = element_label(el, max_chars)

    if kind == StepKind.NAVIGATE:
        return f"Navigate to {url or ''}".rstrip()
    if kind == StepKind.TYPE or kind == StepKind.SET_DATE:
        return f'Type "{"" if value is None else value}" into "{label}"'
    if kind == StepKind.TOGGLE:
        return f'Toggle checkbox "{label}"'
    if kind == StepKind.RADIO:
        return f'Select radio "{label}"'
    if kind == StepKind.SELECT:
        return f'Select "{"" if value is None else value}" in "{label}"'
    if kind in (StepKind.SLIDER, StepKind.COLOR, StepKind.FILE):
        return f'Change "{label}" to "{"" if value is None else value}"'
    if kind == StepKind.SUBMIT:
        return f'Submit form "{label}"'
    if kind == StepKind.SCROLL:
        return "Scroll page"
    if kind == StepKind.CLICK and not action_name:
        return f'Click on "{label}"'

    name = (action_name or kind.value).replace("_", " ").capitalize()
    return f'{name} on "{label}"'


def derive_test_data_key(el: Optional[ElementDescriptor], order: int) -> str:
    """Derive a sanitized test-data key from the element's best identifier."""
    raw = None
    if el is not None:
        raw = el.name or el.aria_label or el.label or el.placeholder or el.id
    if not raw:
        raw = f"element_{order}"
    return _KEY_SANITIZE.sub("_", str(raw)).lower()


def _as_number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_bool(event: RawInteractionEvent) -> bool:
    for candidate in (event.value_after, event.metadata.get("checked"), event.element.checked):
        if isinstance(candidate, bool):
            return candidate
    if isinstance(event.value_after, str) and event.value_after.lower() in ("true", "false"):
        return event.value_after.lower() == "true"
    return True


def event_value(event: RawInteractionEvent) -> Any:
    if event.value_after is not None:
        return event.value_after
    return event.element.value


def extract_test_data(kind: StepKind, event: RawInteractionEvent, order: int) -> dict[str, Any]:
    """Extract a key/value pair whose value type matches the control."""
    if kind == StepKind.NAVIGATE:
        return {"url": event.url or str(event_value(event) or "")}

    key = derive_test_data_key(event.element, order)
    value = event_value(event)

    if kind in (StepKind.TYPE, StepKind.SET_DATE, StepKind.SELECT, StepKind.COLOR, StepKind.FILE):
        return {key: "" if value is None else str(value)}
    if kind == StepKind.TOGGLE:
        return {key: _as_bool(event)}
    if kind == StepKind.RADIO:
        return {key: value if value not in (None, "") else True}
    if kind == StepKind.SLIDER:
        return {key: _as_number(value)}
    if kind == StepKind.CLICK and event.action == ActionKind.CLICK:
        return {f"btn_{key}": True}

    # Non-valued intents and unrecognised actions still carry a payload
    payload = value if value not in (None, "") else (event.raw_action or kind.value)
    return {key: payload}


class StepSynthesizer:
    """Converts raw interaction events into canonical Steps.

    Owns the session's DedupState and a Coalescer for pending-click expiry.
    ``process`` returns the Step created for the given event, or None when
    the event was suppressed, buffered, or merged into an existing Step.
    Every created Step, including ones produced by flushing buffered clicks,
    is also delivered to ``on_step``; in-place edits go to ``on_step_updated``.
    """

    def __init__(
        self,
        generator: Optional[LocatorGenerator] = None,
        classifier: Optional[IntentClassifier] = None,
        settings=None,
        on_step: Optional[StepCallback] = None,
        on_step_updated: Optional[StepCallback] = None,
        coalescer: Optional[Coalescer] = None,
        clock: Optional[Callable[[], float]] = None,
        start_order: int = 0,
    ):
        if settings is None:
            from src.config import get_settings

            settings = get_settings()
        self.settings = settings
        self.generator = generator or LocatorGenerator()
        self.classifier = classifier or IntentClassifier()
        self.coalescer = coalescer or Coalescer()
        self.on_step = on_step
        self.on_step_updated = on_step_updated
        self._clock = clock or (lambda: time.time() * 1000)
        self.window_ms = settings.dedup_window_ms
        self.state = DedupState(window_ms=self.window_ms)
        self.order = start_order
        self.log = logger.bind(component="step_synthesizer")

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def process(self, raw: Union[RawInteractionEvent, dict]) -> Optional[Step]:
        """Process one raw event. Never raises."""
        try:
            if not isinstance(raw, RawInteractionEvent):
                raw = RawInteractionEvent.from_dict(
                    raw, text_max_chars=self.settings.element_text_max_chars
                )
            if not raw.timestamp:
                raw.timestamp = self._clock()
            return self._process(raw)
        except Exception as e:
            self.log.error("Failed to process event", error=str(e))
            return None

    def _process(self, raw: RawInteractionEvent) -> Optional[Step]:
        now = raw.timestamp
        self._flush_expired(now)

        kind = self.classifier.classify(raw)
        el = raw.element
        identity = el.identity
        text_like = el.control_kind.is_text_entry

        # Pending text-click buffer
        if raw.action == ActionKind.CLICK and kind == StepKind.CLICK and text_like:
            self.flush_pending(keep=identity)
            self.state.pending_clicks.hold(raw)
            self.coalescer.schedule(
                identity, self.window_ms, lambda: self._expire_click(identity)
            )
            self.log.debug("Click buffered", identity=identity)
            return None

        if kind.is_text_entry and raw.action in (ActionKind.INPUT, ActionKind.CHANGE):
            self.flush_pending(keep=identity)
            if self.state.pending_clicks.take(identity) is not None:
                self.coalescer.cancel(identity)
                self.log.debug("Incidental click discarded", identity=identity)
        else:
            self.flush_pending()

        # Trailing-window suppression
        reason = self.state.ledger.should_suppress(identity, raw.action, kind, now, text_like)
        if reason:
            self.log.debug("Event suppressed", reason=reason, identity=identity, kind=kind.value)
            return None

        # In-place update of the open text step
        if kind.is_text_entry:
            open_step = self.state.open_text_step(identity)
            if open_step is not None:
                self._update_text_step(open_step, raw)
                self.state.ledger.record(identity, raw.action, kind, now)
                return None

        step = self._build_step(raw, kind)
        self.state.ledger.record(identity, raw.action, kind, now)
        self._emit(step, identity)
        return step

    # ------------------------------------------------------------------
    # Pending clicks
    # ------------------------------------------------------------------

    def flush_pending(self, keep: Optional[str] = None) -> list[Step]:
        """Turn buffered clicks into Steps, in arrival order.

        A click held for ``keep`` stays buffered.
        """
        pending = self.state.pending_clicks
        events = pending.drain() if keep is None else pending.drain_except(keep)
        steps = []
        for event in events:
            identity = event.element.identity
            self.coalescer.cancel(identity)
            steps.append(self._emit_click(event))
        return steps

    def discard_pending(self) -> int:
        """Drop buffered clicks and timers without emitting anything."""
        dropped = len(self.state.pending_clicks.drain())
        self.coalescer.cancel_all()
        return dropped

    def _flush_expired(self, now: float) -> None:
        for identity in self.state.pending_clicks.expired(now, self.window_ms):
            event = self.state.pending_clicks.take(identity)
            self.coalescer.cancel(identity)
            if event is not None:
                self._emit_click(event)

    def _expire_click(self, identity: str) -> None:
        event = self.state.pending_clicks.take(identity)
        if event is not None:
            self._emit_click(event)

    def _emit_click(self, event: RawInteractionEvent) -> Step:
        step = self._build_step(event, StepKind.CLICK)
        self.state.ledger.record(event.element.identity, event.action, StepKind.CLICK, event.timestamp)
        self._emit(step, event.element.identity)
        return step

    # ------------------------------------------------------------------
    # Step construction
    # ------------------------------------------------------------------

    def _build_step(self, raw: RawInteractionEvent, kind: StepKind) -> Step:
        self.order += 1
        max_chars = self.settings.text_description_max_chars
        value = event_value(raw)
        is_navigate = kind == StepKind.NAVIGATE
        action_name = raw.raw_action if raw.action == ActionKind.UNKNOWN else ""

        test_data = extract_test_data(kind, raw, self.order)
        display_value = value
        if kind == StepKind.TOGGLE or kind == StepKind.SLIDER:
            display_value = next(iter(test_data.values()), value)

        return Step(
            order=self.order,
            kind=kind,
            description=describe_step(
                kind,
                None if is_navigate else raw.element,
                value=display_value,
                url=raw.url,
                max_chars=max_chars,
                action_name=action_name,
            ),
            element=None if is_navigate else raw.element,
            locators=[] if is_navigate else self.generator.generate_ranked(raw.element),
            test_data=test_data,
            wait=self.infer_wait(kind, raw),
            url=raw.url,
            timestamp=raw.timestamp,
        )

    def _update_text_step(self, step: Step, raw: RawInteractionEvent) -> None:
        value = event_value(raw)
        key = step.test_key or derive_test_data_key(raw.element, step.order)
        step.test_data = {key: "" if value is None else str(value)}
        step.description = describe_step(
            step.kind,
            step.element,
            value=value,
            max_chars=self.settings.text_description_max_chars,
        )
        self.log.debug("Text step updated", step_id=step.id, order=step.order)
        if self.on_step_updated:
            self.on_step_updated(step)

    def _emit(self, step: Step, identity: Optional[str]) -> None:
        self.state.remember(step, identity)
        self.log.info(
            "Step recorded",
            step_id=step.id,
            order=step.order,
            kind=step.kind.value,
            description=step.description,
        )
        if self.on_step:
            self.on_step(step)

    def infer_wait(self, kind: StepKind, raw: RawInteractionEvent) -> WaitSpec:
        """Infer the replay wait condition from intent and element role."""
        s = self.settings
        el = raw.element

        if kind == StepKind.NAVIGATE:
            return WaitSpec(WaitKind.NETWORK_IDLE, s.network_idle_timeout_ms)

        if kind == StepKind.SUBMIT:
            return WaitSpec(WaitKind.NAVIGATION, s.navigation_timeout_ms)

        if raw.action == ActionKind.CLICK:
            navigates = (
                el.type == "submit"
                or el.control_kind == ControlKind.LINK
                or el.tag == "a"
                or el.role == "link"
            )
            if kind == StepKind.CLICK and navigates:
                return WaitSpec(WaitKind.NAVIGATION, s.navigation_timeout_ms)
            return WaitSpec(WaitKind.CLICKABLE, s.default_wait_timeout_ms)

        if kind == StepKind.MODAL:
            return WaitSpec(WaitKind.PRESENT, s.default_wait_timeout_ms)

        return WaitSpec(WaitKind.VISIBLE, s.default_wait_timeout_ms)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard all dedup state and timers."""
        self.coalescer.cancel_all()
        self.state.reset()
