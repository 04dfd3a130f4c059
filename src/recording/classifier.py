"""Intent classification for raw interaction events.

Maps every event to exactly one StepKind using a priority table keyed by
(action, interaction type), then (action, control kind), then action
alone. Anything left over is a generic click.
"""

from typing import Optional

import structlog

from .models import ActionKind, ControlKind, RawInteractionEvent, StepKind

logger = structlog.get_logger()

DATE_ACTIONS = frozenset({"set_date", "set_time", "set_datetime"})

# Highest priority: what the capture surface said the gesture was
INTERACTION_TABLE: dict[tuple[ActionKind, str], StepKind] = {
    (ActionKind.CLICK, "toggle"): StepKind.TOGGLE,
    (ActionKind.CLICK, "checkbox"): StepKind.TOGGLE,
    (ActionKind.CLICK, "radio"): StepKind.RADIO,
    (ActionKind.CHANGE, "slider"): StepKind.SLIDER,
    (ActionKind.INPUT, "slider"): StepKind.SLIDER,
    (ActionKind.CHANGE, "color"): StepKind.COLOR,
    (ActionKind.INPUT, "color"): StepKind.COLOR,
    (ActionKind.CHANGE, "file"): StepKind.FILE,
    (ActionKind.CHANGE, "date"): StepKind.SET_DATE,
    (ActionKind.CHANGE, "datepicker"): StepKind.SET_DATE,
}

CONTROL_TABLE: dict[tuple[ActionKind, ControlKind], StepKind] = {
    (ActionKind.CLICK, ControlKind.CHECKBOX): StepKind.TOGGLE,
    (ActionKind.CLICK, ControlKind.TOGGLE): StepKind.TOGGLE,
    (ActionKind.CLICK, ControlKind.RADIO): StepKind.RADIO,
    (ActionKind.TOGGLE, ControlKind.RADIO): StepKind.RADIO,
    (ActionKind.SELECT, ControlKind.RADIO): StepKind.RADIO,
    (ActionKind.INPUT, ControlKind.TEXT): StepKind.TYPE,
    (ActionKind.INPUT, ControlKind.CONTENTEDITABLE): StepKind.TYPE,
    (ActionKind.INPUT, ControlKind.DATE_TIME): StepKind.SET_DATE,
    (ActionKind.INPUT, ControlKind.SLIDER): StepKind.SLIDER,
    (ActionKind.INPUT, ControlKind.COLOR): StepKind.COLOR,
    (ActionKind.CHANGE, ControlKind.TEXT): StepKind.TYPE,
    (ActionKind.CHANGE, ControlKind.CONTENTEDITABLE): StepKind.TYPE,
    (ActionKind.CHANGE, ControlKind.DATE_TIME): StepKind.SET_DATE,
    (ActionKind.CHANGE, ControlKind.SELECT): StepKind.SELECT,
    (ActionKind.CHANGE, ControlKind.CHECKBOX): StepKind.TOGGLE,
    (ActionKind.CHANGE, ControlKind.TOGGLE): StepKind.TOGGLE,
    (ActionKind.CHANGE, ControlKind.RADIO): StepKind.RADIO,
    (ActionKind.CHANGE, ControlKind.SLIDER): StepKind.SLIDER,
    (ActionKind.CHANGE, ControlKind.COLOR): StepKind.COLOR,
    (ActionKind.CHANGE, ControlKind.FILE): StepKind.FILE,
}

ACTION_TABLE: dict[ActionKind, StepKind] = {
    ActionKind.NAVIGATE: StepKind.NAVIGATE,
    ActionKind.CLICK: StepKind.CLICK,
    ActionKind.INPUT: StepKind.TYPE,
    ActionKind.CHANGE: StepKind.TYPE,
    ActionKind.SELECT: StepKind.SELECT,
    ActionKind.TOGGLE: StepKind.TOGGLE,
    ActionKind.SUBMIT: StepKind.SUBMIT,
    ActionKind.SCROLL: StepKind.SCROLL,
    ActionKind.HOVER: StepKind.HOVER,
    ActionKind.DRAG: StepKind.DRAG,
    ActionKind.MODAL: StepKind.MODAL,
}


class IntentClassifier:
    """Classifies raw events into step intents. Total: never returns None."""

    def __init__(
        self,
        interaction_table: Optional[dict] = None,
        control_table: Optional[dict] = None,
        action_table: Optional[dict] = None,
    ):
        self.interaction_table = interaction_table or INTERACTION_TABLE
        self.control_table = control_table or CONTROL_TABLE
        self.action_table = action_table or ACTION_TABLE

    def classify(self, event: RawInteractionEvent) -> StepKind:
        action = event.action
        control = event.element.control_kind

        if event.raw_action in DATE_ACTIONS:
            return StepKind.SET_DATE

        interaction = (event.interaction_type or "").lower()
        if interaction:
            kind = self.interaction_table.get((action, interaction))
            if kind is not None:
                return kind

        kind = self.control_table.get((action, control))
        if kind is not None:
            return kind

        kind = self.action_table.get(action)
        if kind is not None:
            return kind

        logger.debug(
            "Unclassified action, using click",
            action=event.raw_action or action.value,
            control=control.value,
        )
        return StepKind.CLICK
