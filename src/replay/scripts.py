"""JavaScript builders for replay.

Each builder returns a self-contained expression for ``page.evaluate``:
- ``find_element_js``: locate an element for one Locator, or null
- ``element_state_js``: report whether a locator's element exists, is
  visible and is enabled
- ``action_js``: apply a step's action to the element a locator finds
- ``scroll_js``: relative page scroll

Values are embedded through ``json.dumps`` so any string is safe.
"""

import json
from typing import Any, Optional

from src.locators.models import Locator, LocatorStrategy
from src.recording.models import ElementDescriptor, StepKind

XPATH_STRATEGIES = frozenset({
    LocatorStrategy.TEXT,
    LocatorStrategy.RELATIVE_XPATH,
    LocatorStrategy.ABSOLUTE_XPATH,
})

BUTTON_SELECTOR = 'button, [role="button"], input[type="submit"], input[type="button"], input[type="reset"]'

_NORM = "(s) => (s || '').replace(/\\s+/g, ' ').trim()"


def _js(value: Any) -> str:
    return json.dumps(value)


def _text_match(selector: str, text: str, index: Optional[int]) -> str:
    pick = f"[{int(index)}]" if index is not None else "[0]"
    return (
        f"(() => {{ const norm = {_NORM}; "
        f"const hits = Array.from(document.querySelectorAll({_js(selector)}))"
        f".filter(el => norm(el.innerText || el.textContent || el.value) === {_js(text)}); "
        f"return hits{pick} || null; }})()"
    )


def find_element_js(locator: Locator) -> str:
    """Expression evaluating to the element ``locator`` targets, or null."""
    strategy = locator.strategy
    value = locator.value

    if strategy == LocatorStrategy.ID:
        body = f"document.getElementById({_js(value)})"
    elif strategy == LocatorStrategy.NAME:
        body = f"document.getElementsByName({_js(value)})[0] || null"
    elif strategy == LocatorStrategy.ACCESSIBILITY:
        body = f"document.querySelector('[aria-label=\"' + CSS.escape({_js(value)}) + '\"]')"
    elif strategy == LocatorStrategy.LABEL:
        body = (
            f"(() => {{ const norm = {_NORM}; "
            f"const label = Array.from(document.querySelectorAll('label'))"
            f".find(l => norm(l.textContent) === {_js(value)}); "
            f"if (!label) return null; "
            f"return label.control || label.querySelector('input, select, textarea'); }})()"
        )
    elif strategy == LocatorStrategy.LINK_TEXT:
        body = _text_match("a", value, None)
    elif strategy == LocatorStrategy.NTH_LINK_TEXT:
        body = _text_match("a", value, locator.index or 0)
    elif strategy == LocatorStrategy.BUTTON_TEXT:
        body = _text_match(BUTTON_SELECTOR, value, None)
    elif strategy == LocatorStrategy.NTH_BUTTON_TEXT:
        body = _text_match(BUTTON_SELECTOR, value, locator.index or 0)
    elif strategy in XPATH_STRATEGIES:
        body = (
            f"document.evaluate({_js(value)}, document, null, "
            f"XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue"
        )
    else:
        body = f"document.querySelector({_js(value)})"

    return f"(() => {{ try {{ return {body}; }} catch (e) {{ return null; }} }})()"


def element_state_js(locator: Locator) -> str:
    """Expression evaluating to {found, visible, enabled} for ``locator``."""
    return f"""(() => {{
  const el = {find_element_js(locator)};
  if (!el) return {{ found: false, visible: false, enabled: false }};
  const rect = el.getBoundingClientRect();
  const style = window.getComputedStyle(el);
  const visible = rect.width > 0 && rect.height > 0
    && style.visibility !== 'hidden' && style.display !== 'none';
  const enabled = !el.disabled && el.getAttribute('aria-disabled') !== 'true';
  return {{ found: true, visible: visible, enabled: enabled }};
}})()"""


def _native_setter(value_expr: str) -> str:
    return f"""const proto = el instanceof HTMLTextAreaElement
    ? HTMLTextAreaElement.prototype
    : HTMLInputElement.prototype;
  const desc = Object.getOwnPropertyDescriptor(proto, 'value');
  if (desc && desc.set && (el instanceof HTMLInputElement || el instanceof HTMLTextAreaElement)) {{
    desc.set.call(el, '');
    desc.set.call(el, {value_expr});
  }} else {{
    el.value = {value_expr};
  }}
  el.dispatchEvent(new Event('input', {{ bubbles: true }}));
  el.dispatchEvent(new Event('change', {{ bubbles: true }}));"""


def _type_body(value: Any) -> str:
    text = _js("" if value is None else str(value))
    return f"""el.focus();
  if (el.isContentEditable) {{
    el.textContent = {text};
    el.dispatchEvent(new InputEvent('input', {{ bubbles: true }}));
  }} else {{
  {_native_setter(text)}
  }}"""


def _select_body(value: Any) -> str:
    text = _js("" if value is None else str(value))
    return f"""const wanted = {text};
  if (el.options) {{
    const opt = Array.from(el.options).find(o => o.value === wanted)
      || Array.from(el.options).find(o => (o.textContent || '').trim() === wanted);
    el.value = opt ? opt.value : wanted;
  }} else {{
    el.value = wanted;
  }}
  el.dispatchEvent(new Event('input', {{ bubbles: true }}));
  el.dispatchEvent(new Event('change', {{ bubbles: true }}));"""


def _toggle_body(value: Any) -> str:
    target = "true" if value is None else _js(bool(value))
    return f"""const current = typeof el.checked === 'boolean'
    ? el.checked
    : el.getAttribute('aria-checked') === 'true';
  if (current !== {target}) el.click();"""


def _radio_body(element: Optional[ElementDescriptor], value: Any) -> str:
    lookup = "null"
    if element is not None and element.name and isinstance(value, str) and value:
        lookup = (
            "document.querySelector('input[type=\"radio\"][name=\"' + CSS.escape("
            f"{_js(element.name)}) + '\"][value=\"' + CSS.escape({_js(value)}) + '\"]')"
        )
    return f"""const radio = {lookup} || el;
  if (!radio.checked) radio.click();"""


_SUBMIT_BODY = """const form = el.tagName === 'FORM' ? el : el.closest('form');
  if (form) {
    if (form.requestSubmit) form.requestSubmit(); else form.submit();
  } else {
    el.click();
  }"""

_HOVER_BODY = """el.dispatchEvent(new MouseEvent('mouseover', { bubbles: true }));
  el.dispatchEvent(new MouseEvent('mouseenter', { bubbles: false }));"""

_DRAG_BODY = """el.dispatchEvent(new DragEvent('dragstart', { bubbles: true }));
  el.dispatchEvent(new DragEvent('dragend', { bubbles: true }));"""

_CLICK_BODY = """el.scrollIntoView({ block: 'center' });
  el.click();"""


def action_js(
    kind: StepKind,
    locator: Locator,
    value: Any = None,
    element: Optional[ElementDescriptor] = None,
) -> str:
    """Expression applying a step's action; evaluates to {ok, error?}."""
    if kind == StepKind.TYPE:
        body = _type_body(value)
    elif kind in (StepKind.SET_DATE, StepKind.SLIDER, StepKind.COLOR):
        body = _native_setter(_js("" if value is None else str(value)))
    elif kind == StepKind.SELECT:
        body = _select_body(value)
    elif kind == StepKind.TOGGLE:
        body = _toggle_body(value)
    elif kind == StepKind.RADIO:
        body = _radio_body(element, value)
    elif kind == StepKind.SUBMIT:
        body = _SUBMIT_BODY
    elif kind == StepKind.HOVER:
        body = _HOVER_BODY
    elif kind == StepKind.DRAG:
        body = _DRAG_BODY
    elif kind in (StepKind.MODAL, StepKind.FILE):
        # Resolution alone is the check
        body = ""
    else:
        body = _CLICK_BODY

    return f"""(() => {{
  const el = {find_element_js(locator)};
  if (!el) return {{ ok: false, error: 'element no longer attached' }};
  try {{
  {body}
  }} catch (e) {{
    return {{ ok: false, error: String(e && e.message || e) }};
  }}
  return {{ ok: true }};
}})()"""


def scroll_js(dy: int = 300) -> str:
    return f"window.scrollBy(0, {int(dy)})"
