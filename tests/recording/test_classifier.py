"""Tests for intent classification."""

import pytest

from src.recording.classifier import IntentClassifier
from src.recording.models import ActionKind, ElementDescriptor, RawInteractionEvent, StepKind


@pytest.fixture
def classifier():
    return IntentClassifier()


def event(action, interaction_type="", raw_action=None, **element):
    element.setdefault("tag", "input")
    return RawInteractionEvent(
        action=action,
        element=ElementDescriptor(**element),
        interaction_type=interaction_type,
        raw_action=raw_action or action.value,
    )


class TestIntentClassifier:
    """Tests for IntentClassifier.classify."""

    def test_date_actions(self, classifier):
        """Test date-picker actions always classify as set_date."""
        raw = event(ActionKind.CHANGE, raw_action="set_time", tag="div")
        assert classifier.classify(raw) == StepKind.SET_DATE

    def test_interaction_type_wins(self, classifier):
        """Test the reported interaction type beats the control kind."""
        raw = event(ActionKind.CHANGE, interaction_type="slider", type="text")
        assert classifier.classify(raw) == StepKind.SLIDER

    @pytest.mark.parametrize("action,element,expected", [
        (ActionKind.CLICK, {"type": "checkbox"}, StepKind.TOGGLE),
        (ActionKind.CLICK, {"type": "radio"}, StepKind.RADIO),
        (ActionKind.INPUT, {"type": "email"}, StepKind.TYPE),
        (ActionKind.CHANGE, {"type": "date"}, StepKind.SET_DATE),
        (ActionKind.CHANGE, {"tag": "select"}, StepKind.SELECT),
        (ActionKind.INPUT, {"type": "range"}, StepKind.SLIDER),
        (ActionKind.CHANGE, {"type": "color"}, StepKind.COLOR),
        (ActionKind.CHANGE, {"type": "file"}, StepKind.FILE),
        (ActionKind.INPUT, {"tag": "div", "content_editable": True}, StepKind.TYPE),
        (ActionKind.CLICK, {"tag": "div", "role": "switch"}, StepKind.TOGGLE),
    ])
    def test_control_table(self, classifier, action, element, expected):
        """Test (action, control kind) lookups."""
        assert classifier.classify(event(action, **element)) == expected

    @pytest.mark.parametrize("action,expected", [
        (ActionKind.NAVIGATE, StepKind.NAVIGATE),
        (ActionKind.SUBMIT, StepKind.SUBMIT),
        (ActionKind.SCROLL, StepKind.SCROLL),
        (ActionKind.HOVER, StepKind.HOVER),
        (ActionKind.DRAG, StepKind.DRAG),
        (ActionKind.MODAL, StepKind.MODAL),
        (ActionKind.CLICK, StepKind.CLICK),
    ])
    def test_action_table(self, classifier, action, expected):
        """Test action-only lookups on a plain container."""
        assert classifier.classify(event(action, tag="div")) == expected

    def test_unknown_action_is_click(self, classifier):
        """Test anything unclassified falls back to click."""
        raw = event(ActionKind.UNKNOWN, raw_action="long_press", tag="div")
        assert classifier.classify(raw) == StepKind.CLICK

    def test_click_on_text_input_is_click(self, classifier):
        """Test a click on a text field is a plain click intent."""
        assert classifier.classify(event(ActionKind.CLICK, type="text")) == StepKind.CLICK
