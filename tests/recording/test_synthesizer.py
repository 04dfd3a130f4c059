"""Tests for step synthesis from raw interaction events."""

import asyncio

import pytest

from src.config import Settings
from src.recording.models import (
    ElementDescriptor,
    RawInteractionEvent,
    StepKind,
    WaitKind,
)
from src.recording.synthesizer import (
    StepSynthesizer,
    derive_test_data_key,
    describe_step,
    element_label,
    extract_test_data,
)

EMAIL = {
    "tag": "input",
    "type": "email",
    "id": "email",
    "name": "email",
    "placeholder": "Email address",
    "absolute_xpath": "/html/body/form/input[1]",
}
SUBMIT = {
    "tag": "button",
    "type": "submit",
    "id": "submit-btn",
    "text": "Sign in",
    "absolute_xpath": "/html/body/form/button[1]",
}
PASSWORD = {
    "tag": "input",
    "type": "password",
    "name": "password",
    "absolute_xpath": "/html/body/form/input[3]",
}
TERMS = {
    "tag": "input",
    "type": "checkbox",
    "name": "terms",
    "label": "Accept terms",
    "absolute_xpath": "/html/body/form/input[2]",
}


def raw(action, element=None, timestamp=0, **extra):
    payload = {"action": action, "timestamp": timestamp}
    if element is not None:
        payload["element"] = element
    payload.update(extra)
    return payload


@pytest.fixture
def recorded():
    """Collects steps delivered to the callbacks."""

    class Recorded:
        def __init__(self):
            self.steps = []
            self.updates = []

    return Recorded()


@pytest.fixture
def synthesizer(settings, fake_clock, recorded):
    return StepSynthesizer(
        settings=settings,
        on_step=recorded.steps.append,
        on_step_updated=recorded.updates.append,
        clock=fake_clock,
    )


class TestDescriptions:
    """Tests for labels, descriptions and test-data keys."""

    def test_element_label_priority(self):
        """Test aria-label wins over other names."""
        el = ElementDescriptor(tag="input", aria_label="Search", placeholder="Type here", name="q")
        assert element_label(el) == "Search"
        assert element_label(ElementDescriptor(tag="input", name="q")) == "q"
        assert element_label(None) == "element"

    def test_element_label_truncated(self):
        """Test long labels are cut to the limit with an ellipsis."""
        el = ElementDescriptor(tag="p", text="word " * 30)
        label = element_label(el, max_chars=50)
        assert len(label) == 50
        assert label.endswith("...")

    @pytest.mark.parametrize("kind,value,expected", [
        (StepKind.TYPE, "abc", 'Type "abc" into "Email"'),
        (StepKind.TOGGLE, True, 'Toggle checkbox "Email"'),
        (StepKind.RADIO, "a", 'Select radio "Email"'),
        (StepKind.SELECT, "US", 'Select "US" in "Email"'),
        (StepKind.SLIDER, 42.0, 'Change "Email" to "42.0"'),
        (StepKind.SUBMIT, None, 'Submit form "Email"'),
        (StepKind.CLICK, None, 'Click on "Email"'),
        (StepKind.HOVER, None, 'Hover on "Email"'),
        (StepKind.SCROLL, None, "Scroll page"),
    ])
    def test_describe_step(self, kind, value, expected):
        """Test description templates per intent."""
        el = ElementDescriptor(tag="input", aria_label="Email")
        assert describe_step(kind, el, value=value) == expected

    def test_describe_navigate(self):
        """Test navigate descriptions use the URL."""
        assert describe_step(StepKind.NAVIGATE, None, url="https://x.test/") == "Navigate to https://x.test/"

    def test_describe_unknown_action(self):
        """Test unknown actions render their raw name."""
        el = ElementDescriptor(tag="div")
        assert describe_step(StepKind.CLICK, el, action_name="long_press") == 'Long press on "div"'

    def test_derive_test_data_key(self):
        """Test keys are sanitized and lowercased."""
        assert derive_test_data_key(ElementDescriptor(tag="input", name="user.Email"), 1) == "user_email"
        assert derive_test_data_key(ElementDescriptor(tag="input", aria_label="First name"), 1) == "first_name"
        assert derive_test_data_key(ElementDescriptor(tag="div"), 7) == "element_7"

    def test_extract_typed_values(self):
        """Test test-data value types match the control."""
        slider = RawInteractionEvent.from_dict(
            {"action": "change", "element": {"tag": "input", "type": "range", "name": "vol"}, "value": "42"}
        )
        assert extract_test_data(StepKind.SLIDER, slider, 1) == {"vol": 42.0}

        toggle = RawInteractionEvent.from_dict(
            {"action": "click", "element": {"tag": "input", "type": "checkbox", "name": "terms", "checked": False}}
        )
        assert extract_test_data(StepKind.TOGGLE, toggle, 1) == {"terms": False}

        click = RawInteractionEvent.from_dict({"action": "click", "element": {"tag": "button", "id": "go"}})
        assert extract_test_data(StepKind.CLICK, click, 1) == {"btn_go": True}

        nav = RawInteractionEvent.from_dict({"action": "navigate", "url": "https://x.test/a"})
        assert extract_test_data(StepKind.NAVIGATE, nav, 1) == {"url": "https://x.test/a"}


class TestTextEntry:
    """Tests for click buffering and text-step merging."""

    def test_click_then_typing_yields_one_type_step(self, synthesizer, recorded):
        """Test an incidental click and a typing burst collapse to one step."""
        assert synthesizer.process(raw("click", EMAIL, 1000)) is None
        first = synthesizer.process(raw("input", EMAIL, 1100, value="a"))
        assert synthesizer.process(raw("input", EMAIL, 1200, value="ab")) is None
        assert synthesizer.process(raw("input", EMAIL, 1300, value="abc")) is None
        assert synthesizer.process(raw("change", EMAIL, 1400, value="abc")) is None

        assert recorded.steps == [first]
        assert first.kind == StepKind.TYPE
        assert first.test_data == {"email": "abc"}
        assert first.description == 'Type "abc" into "Email address"'
        assert len(recorded.updates) == 2
        assert synthesizer.state.pending_clicks.drain() == []

    def test_lone_click_emitted_after_window(self, synthesizer, recorded):
        """Test a click on a text field with no follow-up becomes a click step."""
        synthesizer.process(raw("click", EMAIL, 1000))
        assert recorded.steps == []

        synthesizer.process(raw("scroll", None, 1700))

        kinds = [s.kind for s in recorded.steps]
        assert kinds == [StepKind.CLICK, StepKind.SCROLL]
        assert recorded.steps[0].test_data == {"btn_email": True}

    def test_other_action_flushes_pending_click_first(self, synthesizer, recorded):
        """Test buffered clicks are emitted before a different action."""
        synthesizer.process(raw("click", EMAIL, 1000))
        step = synthesizer.process(raw("click", SUBMIT, 1100))

        assert [s.kind for s in recorded.steps] == [StepKind.CLICK, StepKind.CLICK]
        assert recorded.steps[1] is step
        assert [s.order for s in recorded.steps] == [1, 2]

    def test_typing_elsewhere_keeps_click_order(self, synthesizer, recorded):
        """Test a held click on one field is emitted before typing in another."""
        synthesizer.process(raw("click", EMAIL, 1000))
        synthesizer.process(raw("click", PASSWORD, 1100))
        synthesizer.process(raw("input", PASSWORD, 1200, value="hello"))
        synthesizer.process(raw("scroll", None, 2000))

        summary = [(s.order, s.kind, s.timestamp) for s in recorded.steps]
        assert summary == [
            (1, StepKind.CLICK, 1000),
            (2, StepKind.TYPE, 1200),
            (3, StepKind.SCROLL, 2000),
        ]
        assert recorded.steps[1].test_data == {"password": "hello"}
        assert synthesizer.coalescer.pending == 0

    def test_same_field_click_stays_held_when_another_is_flushed(self, synthesizer, recorded):
        """Test only clicks on other elements are flushed by a new text click."""
        synthesizer.process(raw("click", EMAIL, 1000))
        synthesizer.process(raw("click", PASSWORD, 1100))

        assert [s.kind for s in recorded.steps] == [StepKind.CLICK]
        assert recorded.steps[0].element.name == "email"
        assert len(synthesizer.state.pending_clicks) == 1

    def test_flush_pending(self, synthesizer, recorded):
        """Test explicit flushing turns held clicks into steps."""
        synthesizer.process(raw("click", EMAIL, 1000))
        flushed = synthesizer.flush_pending()

        assert len(flushed) == 1
        assert recorded.steps == flushed
        assert synthesizer.coalescer.pending == 0

    def test_discard_pending(self, synthesizer, recorded):
        """Test discarding held clicks emits nothing."""
        synthesizer.process(raw("click", EMAIL, 1000))
        assert synthesizer.discard_pending() == 1
        assert recorded.steps == []

    def test_typing_after_other_step_starts_new_step(self, synthesizer, recorded):
        """Test a text step only merges while it is the most recent step."""
        synthesizer.process(raw("input", EMAIL, 1000, value="a"))
        synthesizer.process(raw("click", SUBMIT, 1100))
        synthesizer.process(raw("input", EMAIL, 3000, value="b"))

        assert [s.kind for s in recorded.steps] == [StepKind.TYPE, StepKind.CLICK, StepKind.TYPE]

    def test_change_without_input(self, synthesizer, recorded):
        """Test a change alone still records the value."""
        step = synthesizer.process(raw("change", EMAIL, 1000, value="x@y.z"))
        assert step.kind == StepKind.TYPE
        assert step.test_data == {"email": "x@y.z"}

    def test_input_after_change_suppressed(self, synthesizer, recorded):
        """Test the first of change/input wins inside the window."""
        synthesizer.process(raw("change", EMAIL, 1000, value="x"))
        assert synthesizer.process(raw("input", EMAIL, 1050, value="x")) is None
        assert len(recorded.steps) == 1

    @pytest.mark.asyncio
    async def test_pending_click_expires_on_timer(self, fake_clock, recorded):
        """Test a held click is emitted by its timer without further events."""
        settings = Settings(dedup_window_ms=20)
        synthesizer = StepSynthesizer(settings=settings, on_step=recorded.steps.append, clock=fake_clock)

        synthesizer.process(raw("click", EMAIL, 1000))
        await asyncio.sleep(0.1)

        assert [s.kind for s in recorded.steps] == [StepKind.CLICK]


class TestToggles:
    """Tests for repeated toggle suppression."""

    def test_click_and_change_on_checkbox(self, synthesizer, recorded):
        """Test the change echo of a checkbox click is dropped."""
        step = synthesizer.process(raw("click", TERMS, 1000, value=True))
        assert synthesizer.process(raw("change", TERMS, 1050, value=True)) is None

        assert recorded.steps == [step]
        assert step.kind == StepKind.TOGGLE
        assert step.test_data == {"terms": True}
        assert step.description == 'Toggle checkbox "Accept terms"'

    def test_toggle_after_window(self, synthesizer, recorded):
        """Test toggles outside the window are kept."""
        synthesizer.process(raw("click", TERMS, 1000, value=True))
        synthesizer.process(raw("click", TERMS, 2000, value=False))

        assert [s.test_data["terms"] for s in recorded.steps] == [True, False]


class TestStepConstruction:
    """Tests for locators, waits and ordering on built steps."""

    def test_navigate_step(self, synthesizer):
        """Test navigate steps carry a URL and no element."""
        step = synthesizer.process(raw("navigate", None, 1000, url="https://app.example.com/home"))

        assert step.kind == StepKind.NAVIGATE
        assert step.element is None
        assert step.locators == []
        assert step.test_data == {"url": "https://app.example.com/home"}
        assert step.wait.kind == WaitKind.NETWORK_IDLE
        assert step.wait.timeout_ms == 15000
        assert step.description == "Navigate to https://app.example.com/home"

    def test_submit_click_waits_for_navigation(self, synthesizer):
        """Test clicking a submit button waits for navigation."""
        step = synthesizer.process(raw("click", SUBMIT, 1000))

        assert step.wait.kind == WaitKind.NAVIGATION
        assert step.wait.timeout_ms == 10000
        assert step.locators[0].value == "submit-btn"
        confidences = [loc.confidence for loc in step.locators]
        assert confidences == sorted(confidences, reverse=True)

    def test_plain_click_waits_for_clickable(self, synthesizer):
        """Test ordinary clicks wait for a clickable element."""
        step = synthesizer.process(raw("click", {"tag": "div", "id": "card"}, 1000))
        assert step.wait.kind == WaitKind.CLICKABLE
        assert step.wait.timeout_ms == 5000

    def test_link_click_waits_for_navigation(self, synthesizer):
        """Test link clicks wait for navigation."""
        step = synthesizer.process(raw("click", {"tag": "a", "href": "/docs", "text": "Docs"}, 1000))
        assert step.wait.kind == WaitKind.NAVIGATION

    def test_modal_waits_for_presence(self, synthesizer):
        """Test modal steps wait for presence."""
        step = synthesizer.process(raw("modal", {"tag": "div", "role": "dialog", "id": "m"}, 1000))
        assert step.kind == StepKind.MODAL
        assert step.wait.kind == WaitKind.PRESENT

    def test_type_waits_for_visible(self, synthesizer):
        """Test text entry waits for visibility."""
        step = synthesizer.process(raw("input", EMAIL, 1000, value="a"))
        assert step.wait.kind == WaitKind.VISIBLE

    def test_navbar_toggler_is_a_click(self, synthesizer):
        """Test a button styled as a toggler records a plain click."""
        toggler = {
            "tag": "button",
            "classes": ["navbar-toggler"],
            "aria_label": "Menu",
            "absolute_xpath": "/html/body/nav/button[1]",
        }
        step = synthesizer.process(raw("click", toggler, 1000))

        assert step.kind == StepKind.CLICK
        assert step.description == 'Click on "Menu"'

    def test_unknown_action_is_kept(self, synthesizer):
        """Test an unrecognised action still yields a step with a payload."""
        step = synthesizer.process(raw("long_press", {"tag": "div"}, 1000))

        assert step.kind == StepKind.CLICK
        assert step.description == 'Long press on "div"'
        assert step.test_data == {"element_1": "long_press"}

    def test_start_order(self, settings, fake_clock):
        """Test numbering continues from an existing flow."""
        synthesizer = StepSynthesizer(settings=settings, clock=fake_clock, start_order=5)
        step = synthesizer.process(raw("click", SUBMIT, 1000))
        assert step.order == 6

    def test_missing_timestamp_uses_clock(self, synthesizer, fake_clock):
        """Test events without a timestamp are stamped from the clock."""
        step = synthesizer.process({"action": "click", "element": SUBMIT})
        assert step.timestamp == fake_clock.now

    def test_callback_error_is_contained(self, settings, fake_clock):
        """Test a failing consumer does not break event processing."""

        def broken(step):
            raise RuntimeError("store offline")

        synthesizer = StepSynthesizer(settings=settings, on_step=broken, clock=fake_clock)
        assert synthesizer.process(raw("click", SUBMIT, 1000)) is None

    def test_reset(self, synthesizer):
        """Test reset clears buffered clicks and dedup state."""
        synthesizer.process(raw("click", EMAIL, 1000))
        synthesizer.process(raw("click", TERMS, 1100))
        synthesizer.reset()

        assert len(synthesizer.state.pending_clicks) == 0
        assert len(synthesizer.state.ledger) == 0
        assert synthesizer.state.last_step is None
        assert synthesizer.coalescer.pending == 0
