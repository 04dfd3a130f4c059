"""Fixtures for replay tests."""

import json

import pytest

from src.locators.models import Locator, LocatorStrategy
from src.recording.flow import Flow
from src.recording.models import ElementDescriptor, Step, StepKind, WaitKind, WaitSpec


class FakePage:
    """PageExecutor double.

    An element "exists" when the script's embedded locator value is in
    ``present``. Element-state scripts report ``visible`` and ``enabled``;
    action scripts report ``action_error`` when set.
    """

    def __init__(self, present=(), visible=True, enabled=True, action_error=None):
        self.present = set(present)
        self.visible = visible
        self.enabled = enabled
        self.action_error = action_error
        self.evaluate_error = None
        self.navigate_error = None
        self.scripts = []
        self.actions = []
        self.navigations = []
        self.waits = []

    def _hit(self, script):
        return any(json.dumps(value) in script for value in self.present)

    async def evaluate(self, script):
        self.scripts.append(script)
        if self.evaluate_error is not None:
            raise self.evaluate_error
        if script.startswith("window.scrollBy"):
            return None
        if "ok: true" in script:
            self.actions.append(script)
            if self.action_error:
                return {"ok": False, "error": self.action_error}
            return {"ok": self._hit(script)}
        found = self._hit(script)
        return {
            "found": found,
            "visible": found and self.visible,
            "enabled": found and self.enabled,
        }

    async def navigate(self, url):
        if self.navigate_error is not None:
            raise self.navigate_error
        self.navigations.append(url)

    async def wait_for_page(self, kind, timeout_ms):
        self.waits.append((kind, timeout_ms))


@pytest.fixture
def fake_page():
    return FakePage(present={"submit-btn", "email", "password"})


@pytest.fixture
def fast_wait():
    """A short visible wait so unresolvable locators time out quickly."""
    return WaitSpec(WaitKind.VISIBLE, 50)


@pytest.fixture
def make_step(fast_wait):
    """Factory for element steps with explicit locators."""

    def _make(order, kind=StepKind.CLICK, locators=None, test_data=None, **kwargs):
        kwargs.setdefault("wait", fast_wait)
        kwargs.setdefault("element", ElementDescriptor(tag="button"))
        return Step(
            order=order,
            kind=kind,
            description=kwargs.pop("description", f"{kind.value} {order}"),
            locators=locators or [],
            test_data=test_data or {},
            **kwargs,
        )

    return _make


@pytest.fixture
def login_flow(make_step):
    """Type email, type password, click submit."""
    return Flow(
        name="Login",
        start_url="https://app.example.com/login",
        steps=[
            make_step(
                1,
                StepKind.TYPE,
                [Locator(LocatorStrategy.NAME, "email", 0.85)],
                {"email": "ada@x.test"},
                element=ElementDescriptor(tag="input", type="email", name="email"),
            ),
            make_step(
                2,
                StepKind.TYPE,
                [Locator(LocatorStrategy.CSS, "input.password-old", 0.7),
                 Locator(LocatorStrategy.NAME, "password", 0.6)],
                {"password": "secret"},
                element=ElementDescriptor(tag="input", type="password", name="password"),
            ),
            make_step(
                3,
                StepKind.CLICK,
                [Locator(LocatorStrategy.ID, "submit-btn", 0.895)],
                {"btn_submit_btn": True},
            ),
        ],
    )
