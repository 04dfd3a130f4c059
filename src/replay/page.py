"""Page execution collaborator for replay.

The replay engine decides what script to run; a ``PageExecutor`` decides
how it reaches the page. ``PlaywrightPageExecutor`` adapts a Playwright
page owned by the caller.
"""

import asyncio
from typing import Any, Protocol

import structlog

from src.recording.models import WaitKind

logger = structlog.get_logger()


class PageExecutor(Protocol):
    """Minimal page surface the replay engine depends on."""

    async def evaluate(self, script: str) -> Any: ...

    async def navigate(self, url: str) -> None: ...

    async def wait_for_page(self, kind: WaitKind, timeout_ms: int) -> None: ...


class PlaywrightPageExecutor:
    """PageExecutor backed by a Playwright page."""

    LOAD_STATES = {
        WaitKind.NETWORK_IDLE: "networkidle",
        WaitKind.NAVIGATION: "load",
    }

    def __init__(self, page):
        """
        Initialize with a Playwright page.

        Args:
            page: Playwright page object
        """
        self.page = page
        self.log = logger.bind(component="page_executor")

    async def evaluate(self, script: str) -> Any:
        return await self.page.evaluate(script)

    async def navigate(self, url: str) -> None:
        self.log.info("Navigating", url=url)
        await self.page.goto(url, wait_until="load")

    async def wait_for_page(self, kind: WaitKind, timeout_ms: int) -> None:
        """
        Wait for a page-level condition, bounded by ``timeout_ms``.

        Load-state waits that run out of time are not errors; the budget
        is a settle delay, not an assertion.

        Args:
            kind: Wait condition from the step
            timeout_ms: Upper bound in milliseconds
        """
        state = self.LOAD_STATES.get(kind)
        if state is None:
            await asyncio.sleep(timeout_ms / 1000)
            return

        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        try:
            await self.page.wait_for_load_state(state, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            self.log.debug("Load state not reached, continuing", state=state, timeout_ms=timeout_ms)
