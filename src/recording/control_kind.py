"""Single-point classification of an element into a ControlKind.

Every other component switches on the resulting kind instead of
re-checking tag, type and class strings.
"""

import re
from typing import TYPE_CHECKING

from .models import ControlKind

if TYPE_CHECKING:
    from .models import ElementDescriptor


INPUT_TYPE_KINDS: dict[str, ControlKind] = {
    "text": ControlKind.TEXT,
    "password": ControlKind.TEXT,
    "email": ControlKind.TEXT,
    "number": ControlKind.TEXT,
    "tel": ControlKind.TEXT,
    "url": ControlKind.TEXT,
    "search": ControlKind.TEXT,
    "checkbox": ControlKind.CHECKBOX,
    "radio": ControlKind.RADIO,
    "range": ControlKind.SLIDER,
    "color": ControlKind.COLOR,
    "file": ControlKind.FILE,
    "date": ControlKind.DATE_TIME,
    "time": ControlKind.DATE_TIME,
    "datetime-local": ControlKind.DATE_TIME,
    "month": ControlKind.DATE_TIME,
    "week": ControlKind.DATE_TIME,
    "submit": ControlKind.BUTTON,
    "reset": ControlKind.BUTTON,
    "button": ControlKind.BUTTON,
    "image": ControlKind.BUTTON,
    "hidden": ControlKind.UNKNOWN,
}

ROLE_KINDS: dict[str, ControlKind] = {
    "switch": ControlKind.TOGGLE,
    "slider": ControlKind.SLIDER,
    "checkbox": ControlKind.CHECKBOX,
    "menuitemcheckbox": ControlKind.CHECKBOX,
    "radio": ControlKind.RADIO,
    "menuitemradio": ControlKind.RADIO,
    "listbox": ControlKind.SELECT,
    "combobox": ControlKind.TEXT,
    "textbox": ControlKind.TEXT,
    "searchbox": ControlKind.TEXT,
    "spinbutton": ControlKind.TEXT,
    "tab": ControlKind.BUTTON,
}

# Component-library class fragments, matched as substrings in order
CLASS_HINTS: tuple[tuple[str, ControlKind], ...] = (
    # MUI
    ("mui-switch", ControlKind.TOGGLE),
    ("muiswitch", ControlKind.TOGGLE),
    ("mui-slider", ControlKind.SLIDER),
    ("muislider", ControlKind.SLIDER),
    ("mui-select", ControlKind.SELECT),
    ("muiselect", ControlKind.SELECT),
    ("mui-checkbox", ControlKind.CHECKBOX),
    ("muicheckbox", ControlKind.CHECKBOX),
    ("mui-radio", ControlKind.RADIO),
    ("muiradio", ControlKind.RADIO),
    ("mui-datepicker", ControlKind.DATE_TIME),
    ("muidatepicker", ControlKind.DATE_TIME),
    ("mui-timepicker", ControlKind.DATE_TIME),
    ("mui-autocomplete", ControlKind.TEXT),
    ("muiinputbase", ControlKind.TEXT),
    ("mui-inputbase", ControlKind.TEXT),
    # Ant Design
    ("ant-switch", ControlKind.TOGGLE),
    ("ant-slider", ControlKind.SLIDER),
    ("ant-select", ControlKind.SELECT),
    ("ant-checkbox", ControlKind.CHECKBOX),
    ("ant-radio", ControlKind.RADIO),
    ("ant-picker", ControlKind.DATE_TIME),
    ("ant-upload", ControlKind.FILE),
    ("ant-input", ControlKind.TEXT),
    # Chakra UI
    ("chakra-switch", ControlKind.TOGGLE),
    ("chakra-slider", ControlKind.SLIDER),
    ("chakra-checkbox", ControlKind.CHECKBOX),
    ("chakra-radio", ControlKind.RADIO),
    ("chakra-select", ControlKind.SELECT),
    # PrimeReact / PrimeNG / PrimeVue
    ("p-inputswitch", ControlKind.TOGGLE),
    ("p-slider", ControlKind.SLIDER),
    ("p-dropdown", ControlKind.SELECT),
    ("p-checkbox", ControlKind.CHECKBOX),
    ("p-radiobutton", ControlKind.RADIO),
    ("p-calendar", ControlKind.DATE_TIME),
    ("p-colorpicker", ControlKind.COLOR),
    # Vuetify
    ("v-switch", ControlKind.TOGGLE),
    ("v-slider", ControlKind.SLIDER),
    ("v-checkbox", ControlKind.CHECKBOX),
    ("v-radio", ControlKind.RADIO),
    ("v-select", ControlKind.SELECT),
    ("v-autocomplete", ControlKind.SELECT),
    ("v-file-input", ControlKind.FILE),
    ("v-color-picker", ControlKind.COLOR),
    ("v-text-field", ControlKind.TEXT),
    # Bootstrap
    ("form-switch", ControlKind.TOGGLE),
    ("form-range", ControlKind.SLIDER),
    ("form-select", ControlKind.SELECT),
    ("form-control", ControlKind.TEXT),
)

# Whole class-name segments (split on "-" and "_") for unbranded widgets
GENERIC_CLASS_TOKENS: dict[str, ControlKind] = {
    "toggle": ControlKind.TOGGLE,
    "switch": ControlKind.TOGGLE,
}


def class_tokens(classes) -> set[str]:
    """Split class names into lowercase segments on "-" and "_"."""
    return {
        token
        for name in classes
        for token in re.split(r"[-_]", name.lower())
        if token
    }


def classify_control(el: "ElementDescriptor") -> ControlKind:
    """Derive the ControlKind of an element.

    Native tags and input types win over ARIA roles, which win over
    component-library class heuristics, which win over native buttons and
    links. Generic "toggle"/"switch" class segments only apply to elements
    that are none of those. Unrecognised input types are treated as text.
    """
    tag = (el.tag or "").lower()
    input_type = (el.type or "").lower()
    role = (el.role or "").lower()

    if tag == "input":
        return INPUT_TYPE_KINDS.get(input_type, ControlKind.TEXT)
    if tag == "textarea":
        return ControlKind.TEXT
    if tag == "select":
        return ControlKind.SELECT

    if el.content_editable:
        return ControlKind.CONTENTEDITABLE

    if role in ROLE_KINDS:
        return ROLE_KINDS[role]

    cls = " ".join(el.classes).lower()
    if cls:
        for fragment, kind in CLASS_HINTS:
            if fragment in cls:
                return kind

    if tag == "button" or role == "button":
        return ControlKind.BUTTON
    if tag == "a" or role == "link":
        return ControlKind.LINK

    for token in class_tokens(el.classes):
        if token in GENERIC_CLASS_TOKENS:
            return GENERIC_CLASS_TOKENS[token]

    return ControlKind.UNKNOWN
