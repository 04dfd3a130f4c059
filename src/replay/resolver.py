"""Ranked-locator resolution with polling and fallback.

Each locator is polled at a fixed interval until the step's wait
condition holds or the step's timeout elapses, then the next locator is
tried. Every locator that does not resolve is recorded with the reason.
The abort event is checked on every poll iteration.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from src.locators.models import Locator
from src.recording.models import WaitKind, WaitSpec

from .models import LocatorFailure
from .page import PageExecutor
from .scripts import element_state_js

logger = structlog.get_logger()


@dataclass
class Resolution:
    """Outcome of resolving one step's element."""

    locator: Optional[Locator] = None
    failures: list[LocatorFailure] = field(default_factory=list)
    fallback_used: bool = False
    aborted: bool = False

    @property
    def found(self) -> bool:
        return self.locator is not None


def condition_met(kind: WaitKind, state: Any) -> tuple[bool, str]:
    """Check an element-state report against a wait kind.

    ``visible`` and ``clickable`` both need a rendered element. Every other
    kind, including page-level ``navigation`` and ``network_idle`` waits
    recorded on element steps, only needs the element attached.

    Returns (satisfied, reason-if-not).
    """
    if not isinstance(state, dict) or not state.get("found"):
        return False, "not found"
    if kind not in (WaitKind.VISIBLE, WaitKind.CLICKABLE):
        return True, ""
    if not state.get("visible"):
        return False, "not visible"
    return True, ""


class LocatorResolver:
    """Resolves a step's element against the current page."""

    def __init__(self, page: PageExecutor, poll_interval_ms: int = 200):
        self.page = page
        self.poll_interval_ms = poll_interval_ms
        self.log = logger.bind(component="locator_resolver")

    async def resolve(
        self,
        locators: list[Locator],
        wait: WaitSpec,
        abort: Optional[asyncio.Event] = None,
    ) -> Resolution:
        """Try locators in ranked order; the first to satisfy ``wait`` wins."""
        resolution = Resolution()

        for index, locator in enumerate(locators):
            satisfied, reason = await self._poll(locator, wait, abort)
            if abort is not None and abort.is_set():
                resolution.aborted = True
                return resolution
            if satisfied:
                resolution.locator = locator
                resolution.fallback_used = index > 0
                if resolution.fallback_used:
                    self.log.info(
                        "Fallback locator used",
                        strategy=locator.strategy.value,
                        rank=index,
                        failed=len(resolution.failures),
                    )
                return resolution

            resolution.failures.append(LocatorFailure(locator, reason))
            self.log.warning(
                "Locator did not resolve",
                strategy=locator.strategy.value,
                value=locator.value,
                reason=reason,
            )

        return resolution

    async def _poll(
        self,
        locator: Locator,
        wait: WaitSpec,
        abort: Optional[asyncio.Event],
    ) -> tuple[bool, str]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + wait.timeout_ms / 1000
        interval = self.poll_interval_ms / 1000
        script = element_state_js(locator)
        reason = "not found"

        while True:
            if abort is not None and abort.is_set():
                return False, "aborted"

            try:
                state = await self.page.evaluate(script)
                satisfied, reason = condition_met(wait.kind, state)
                if satisfied:
                    return True, ""
            except Exception as e:
                reason = f"error: {e}"

            remaining = deadline - loop.time()
            if remaining <= 0:
                return False, f"timeout after {wait.timeout_ms}ms: {reason}"
            await asyncio.sleep(min(interval, remaining))
