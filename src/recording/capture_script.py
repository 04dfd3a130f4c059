"""JavaScript generator for the page-side capture script.

The script is injected into every document of the recorded page. It
observes native DOM events, snapshots the target element, and posts one
compact payload per interaction to a host binding. All classification,
deduplication and locator synthesis happens host-side.
"""

import json
from dataclasses import dataclass, field


@dataclass
class CaptureScriptConfig:
    """Configuration for the injected capture script."""

    # Host binding the script posts raw events to
    binding_name: str = "__testflow_emit"
    # Global the script installs its control object on
    global_name: str = "__testflow_recorder"

    # Debounce for input events before they are posted
    input_debounce_ms: int = 400
    # Throttle for scroll events
    scroll_throttle_ms: int = 500
    # Max characters of element text captured
    text_max_chars: int = 200

    capture_hover: bool = False
    capture_modals: bool = True

    test_attributes: tuple[str, ...] = (
        "data-testid",
        "data-cy",
        "data-test",
        "data-test-id",
        "data-automation-id",
        "data-qa",
    )
    # Elements carrying this attribute (and their subtrees) are never recorded
    ignore_attribute: str = "data-testflow-ignore"
    modal_selectors: list[str] = field(default_factory=lambda: [
        "[role=dialog]",
        "[role=alertdialog]",
        "dialog[open]",
        ".modal.show",
    ])


class CaptureScriptGenerator:
    """Generates the capture script for a recording session."""

    def __init__(self, config: CaptureScriptConfig | None = None):
        """Initialize generator with configuration.

        Args:
            config: Capture script configuration
        """
        self.config = config or CaptureScriptConfig()

    def generate(self) -> str:
        """Generate the capture script.

        Returns:
            JavaScript source suitable for ``page.add_init_script``
        """
        config = self.config
        test_attrs = json.dumps(list(config.test_attributes))
        modal_selector = json.dumps(", ".join(config.modal_selectors))

        return f'''(function() {{
  if (window.{config.global_name}) return;

  var BINDING = "{config.binding_name}";
  var TEST_ATTRS = {test_attrs};
  var IGNORE_ATTR = "{config.ignore_attribute}";
  var TEXT_MAX = {config.text_max_chars};
  var DATE_TYPES = ["date", "time", "datetime-local", "month", "week"];

  var state = {{ active: true, paused: false }};
  var inputTimers = new WeakMap();
  var valueBefore = new WeakMap();
  var lastScroll = 0;

  function ignored(el) {{
    return !el || !el.closest || !!el.closest("[" + IGNORE_ATTR + "]");
  }}

  function tagIndex(el) {{
    var tag = el.tagName;
    var all = document.getElementsByTagName(tag);
    var text = (el.textContent || "").trim();
    var idx = 0;
    for (var i = 0; i < all.length; i++) {{
      if (all[i] === el) return idx;
      if ((all[i].textContent || "").trim() === text) idx++;
    }}
    return idx;
  }}

  function absoluteXPath(el) {{
    var parts = [];
    while (el && el.nodeType === 1) {{
      var i = 1;
      var sib = el.previousElementSibling;
      while (sib) {{ if (sib.tagName === el.tagName) i++; sib = sib.previousElementSibling; }}
      parts.unshift(el.tagName.toLowerCase() + "[" + i + "]");
      el = el.parentElement;
    }}
    return "/" + parts.join("/");
  }}

  function relativeXPath(el) {{
    if (el.id) return '//*[@id="' + el.id + '"]';
    if (el.name) return "//" + el.tagName.toLowerCase() + '[@name="' + el.name + '"]';
    var parts = [];
    var cur = el;
    while (cur && cur !== document.body && cur.nodeType === 1) {{
      var part = cur.tagName.toLowerCase();
      if (cur.id) {{ parts.unshift('*[@id="' + cur.id + '"]'); return "//" + parts.join("/"); }}
      var i = 1;
      var sib = cur.previousElementSibling;
      while (sib) {{ if (sib.tagName === cur.tagName) i++; sib = sib.previousElementSibling; }}
      parts.unshift(part + "[" + i + "]");
      cur = cur.parentElement;
    }}
    return "//" + parts.join("/");
  }}

  function labelFor(el) {{
    if (el.labels && el.labels.length) return (el.labels[0].textContent || "").trim();
    var labelledBy = el.getAttribute("aria-labelledby");
    if (labelledBy) {{
      var ref = document.getElementById(labelledBy);
      if (ref) return (ref.textContent || "").trim();
    }}
    return null;
  }}

  function describe(el) {{
    var tests = {{}};
    TEST_ATTRS.forEach(function(a) {{ var v = el.getAttribute(a); if (v) tests[a] = v; }});
    return {{
      tag: el.tagName.toLowerCase(),
      type: el.getAttribute("type") || null,
      role: el.getAttribute("role") || null,
      id: el.id || null,
      name: el.getAttribute("name") || null,
      aria_label: el.getAttribute("aria-label") || null,
      label: labelFor(el),
      placeholder: el.getAttribute("placeholder") || null,
      text: (el.innerText || el.textContent || "").trim().slice(0, TEXT_MAX) || null,
      title: el.getAttribute("title") || null,
      value: el.value !== undefined && el.value !== null ? String(el.value) : null,
      href: el.getAttribute("href") ? el.href : null,
      classes: Array.from(el.classList || []),
      test_attributes: tests,
      tag_index: tagIndex(el),
      xpath: relativeXPath(el),
      absolute_xpath: absoluteXPath(el),
      content_editable: !!el.isContentEditable,
      checked: typeof el.checked === "boolean" ? el.checked : null
    }};
  }}

  function send(action, el, extra) {{
    if (!state.active || state.paused) return;
    var payload = {{
      action: action,
      element: el ? describe(el) : null,
      timestamp: Date.now(),
      url: window.location.href
    }};
    for (var k in extra || {{}}) payload[k] = extra[k];
    try {{ window[BINDING](payload); }} catch (e) {{ /* host gone */ }}
  }}

  function isTextLike(el) {{
    var tag = el.tagName.toLowerCase();
    var type = (el.type || "").toLowerCase();
    if (tag === "textarea" || el.isContentEditable) return true;
    return tag === "input" && ["checkbox", "radio", "range", "color", "file", "submit", "button", "reset"].indexOf(type) === -1;
  }}

  document.addEventListener("focusin", function(e) {{
    var el = e.target;
    if (el && "value" in el) valueBefore.set(el, el.value);
  }}, true);

  document.addEventListener("click", function(e) {{
    var el = e.target;
    if (ignored(el)) return;
    var tag = el.tagName.toLowerCase();
    var type = (el.type || "").toLowerCase();
    // The change event records selects, checkboxes and radios
    if (tag === "option" || tag === "select") return;
    if (tag === "input" && (type === "checkbox" || type === "radio")) return;
    if (tag === "label" && el.control && ["checkbox", "radio"].indexOf(el.control.type) !== -1) return;
    send("click", el, {{ value_before: valueBefore.get(el) || null }});
  }}, true);

  document.addEventListener("input", function(e) {{
    var el = e.target;
    if (ignored(el) || !isTextLike(el)) return;
    clearTimeout(inputTimers.get(el));
    inputTimers.set(el, setTimeout(function() {{
      send("input", el, {{
        value_before: valueBefore.get(el) || null,
        value_after: el.isContentEditable ? el.innerText : el.value
      }});
    }}, {config.input_debounce_ms}));
  }}, true);

  document.addEventListener("change", function(e) {{
    var el = e.target;
    if (ignored(el)) return;
    var tag = el.tagName.toLowerCase();
    var type = (el.type || "").toLowerCase();
    var extra = {{ value_before: valueBefore.get(el) || null, value_after: el.value }};
    if (type === "checkbox") {{ extra.value_after = el.checked; send("toggle", el, extra); return; }}
    if (type === "radio") {{ send("toggle", el, extra); return; }}
    if (tag === "select") {{ send("select", el, extra); return; }}
    if (type === "range") {{ extra.interaction_type = "slider"; }}
    if (type === "file") {{ extra.value_after = Array.from(el.files || []).map(function(f) {{ return f.name; }}).join(", "); }}
    if (DATE_TYPES.indexOf(type) !== -1) {{ send(type === "time" ? "set_time" : "set_date", el, extra); return; }}
    clearTimeout(inputTimers.get(el));
    send("change", el, extra);
  }}, true);

  document.addEventListener("submit", function(e) {{
    if (ignored(e.target)) return;
    send("submit", e.target, {{}});
  }}, true);

  window.addEventListener("scroll", function() {{
    var now = Date.now();
    if (now - lastScroll < {config.scroll_throttle_ms}) return;
    lastScroll = now;
    send("scroll", null, {{ metadata: {{ x: window.scrollX, y: window.scrollY }} }});
  }}, true);

  if ({str(config.capture_hover).lower()}) {{
    document.addEventListener("mouseover", function(e) {{
      if (ignored(e.target)) return;
      send("hover", e.target, {{}});
    }}, true);
  }}

  if ({str(config.capture_modals).lower()} && window.MutationObserver) {{
    new MutationObserver(function(mutations) {{
      mutations.forEach(function(m) {{
        m.addedNodes.forEach(function(node) {{
          if (node.nodeType !== 1 || !node.matches) return;
          var modal = node.matches({modal_selector}) ? node : node.querySelector({modal_selector});
          if (modal && !ignored(modal)) send("modal", modal, {{}});
        }});
      }});
    }}).observe(document.documentElement, {{ childList: true, subtree: true }});
  }}

  window.{config.global_name} = {{
    pause: function() {{ state.paused = true; }},
    resume: function() {{ state.paused = false; }},
    stop: function() {{ state.active = false; }},
    start: function() {{ state.active = true; state.paused = false; }},
    state: function() {{ return {{ active: state.active, paused: state.paused }}; }}
  }};
}})();'''

    def control_call(self, method: str) -> str:
        """Expression invoking a control method on the installed script.

        Args:
            method: One of pause, resume, stop, start

        Returns:
            JavaScript expression, a no-op if the script is absent
        """
        if method not in ("pause", "resume", "stop", "start"):
            raise ValueError(f"Unknown capture control: {method}")
        return f"window.{self.config.global_name}?.{method}()"
