"""Tests for the Playwright page executor."""

from unittest.mock import AsyncMock, patch

import pytest

from src.recording.models import WaitKind
from src.replay.page import PlaywrightPageExecutor


class TestPlaywrightPageExecutor:
    """Tests for PlaywrightPageExecutor."""

    @pytest.mark.asyncio
    async def test_evaluate(self, mock_playwright_page):
        """Test scripts are forwarded to the page."""
        mock_playwright_page.evaluate.return_value = {"found": True}
        executor = PlaywrightPageExecutor(mock_playwright_page)

        assert await executor.evaluate("1 + 1") == {"found": True}
        mock_playwright_page.evaluate.assert_awaited_once_with("1 + 1")

    @pytest.mark.asyncio
    async def test_navigate(self, mock_playwright_page):
        """Test navigation waits for load."""
        executor = PlaywrightPageExecutor(mock_playwright_page)
        await executor.navigate("https://app.example.com/")
        mock_playwright_page.goto.assert_awaited_once_with("https://app.example.com/", wait_until="load")

    @pytest.mark.asyncio
    async def test_wait_for_network_idle(self, mock_playwright_page):
        """Test network-idle waits use the matching load state."""
        executor = PlaywrightPageExecutor(mock_playwright_page)
        await executor.wait_for_page(WaitKind.NETWORK_IDLE, 2000)
        mock_playwright_page.wait_for_load_state.assert_awaited_once_with("networkidle", timeout=2000)

    @pytest.mark.asyncio
    async def test_wait_for_navigation(self, mock_playwright_page):
        """Test navigation waits use the load state."""
        executor = PlaywrightPageExecutor(mock_playwright_page)
        await executor.wait_for_page(WaitKind.NAVIGATION, 1500)
        mock_playwright_page.wait_for_load_state.assert_awaited_once_with("load", timeout=1500)

    @pytest.mark.asyncio
    async def test_wait_timeout_is_not_an_error(self, mock_playwright_page):
        """Test a load-state timeout is swallowed as a settle budget."""
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        mock_playwright_page.wait_for_load_state.side_effect = PlaywrightTimeoutError("Timeout 2000ms exceeded")
        executor = PlaywrightPageExecutor(mock_playwright_page)

        await executor.wait_for_page(WaitKind.NETWORK_IDLE, 2000)

    @pytest.mark.asyncio
    async def test_other_waits_sleep(self, mock_playwright_page):
        """Test other wait kinds are a fixed delay."""
        executor = PlaywrightPageExecutor(mock_playwright_page)
        with patch("src.replay.page.asyncio.sleep", new=AsyncMock()) as sleep:
            await executor.wait_for_page(WaitKind.VISIBLE, 300)

        sleep.assert_awaited_once_with(0.3)
        mock_playwright_page.wait_for_load_state.assert_not_awaited()

