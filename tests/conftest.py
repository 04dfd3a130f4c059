"""Shared fixtures for TestFlow recording and replay tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "smoke: mark test as smoke test (fast, critical path - included in CI)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring a real browser"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set environment variables read by Settings."""
    env_vars = {
        "TESTFLOW_DEDUP_WINDOW_MS": "600",
        "TESTFLOW_REPLAY_POLL_INTERVAL_MS": "10",
        "TESTFLOW_LOG_LEVEL": "DEBUG",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def settings():
    """Settings tuned for fast tests: short polls and no settle delays."""
    from src.config import Settings

    return Settings(
        dedup_window_ms=600,
        replay_poll_interval_ms=10,
        start_url_settle_ms=0,
        navigation_settle_ms=0,
        network_idle_settle_ms=0,
        default_settle_ms=0,
    )


@pytest.fixture
def make_element():
    """Factory for ElementDescriptor snapshots."""
    from src.recording.models import ElementDescriptor

    def _make(**kwargs):
        kwargs.setdefault("tag", "input")
        return ElementDescriptor(**kwargs)

    return _make


@pytest.fixture
def text_input(make_element):
    """A plain email text field."""
    return make_element(
        tag="input",
        type="email",
        id="email",
        name="email",
        placeholder="Email address",
        absolute_xpath="/html/body/form/input[1]",
    )


@pytest.fixture
def submit_button(make_element):
    """A submit button with a stable id."""
    return make_element(
        tag="button",
        type="submit",
        id="submit-btn",
        text="Sign in",
        classes=("btn", "btn-primary"),
        absolute_xpath="/html/body/form/button[1]",
    )


@pytest.fixture
def fake_clock():
    """Manually advanced millisecond clock."""

    class FakeClock:
        def __init__(self):
            self.now = 1_000.0

        def __call__(self) -> float:
            return self.now

        def advance(self, ms: float) -> float:
            self.now += ms
            return self.now

    return FakeClock()


@pytest.fixture
def mock_playwright_page():
    """Mock Playwright page with the async methods the core touches."""
    page = MagicMock()
    page.url = "https://app.example.com/login"
    page.evaluate = AsyncMock(return_value=None)
    page.goto = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.expose_binding = AsyncMock()
    page.add_init_script = AsyncMock()
    page.main_frame = MagicMock(name="main_frame")
    return page
