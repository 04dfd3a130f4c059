"""Replay engine: sequential step execution with locator fallback.

State machine:
    idle -> playing -> idle          start_replay (full run, fail-fast)
    idle/paused -> stepping -> paused   step_over (one enabled step)
    any -> idle                      stop_replay (cooperative abort)

Steps never run concurrently. A new run or step waits for an aborted
loop to wind down and is refused while a live one is in flight.
Resolution and action failures are caught at the step boundary and
reported as failed StepResults; nothing raises past the engine. Abort
never raises either: it takes effect at the next poll iteration or step
boundary. Each run owns its abort event, so a stopped run stays stopped.


Example:
    engine = ReplayEngine(PlaywrightPageExecutor(page))
    engine.on("step-failed", lambda result: print(result.error))
    run = await engine.start_replay(flow)
    print(run.passed)
"""

import asyncio
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog

from src.recording.flow import Flow, resolve_variables
from src.recording.models import Step, StepKind, WaitKind
from src.utils.logging import ReplayLogger

from .models import (
    ActionApplicationFailure,
    LocatorResolutionFailure,
    ReplayCommandResult,
    ReplayDiagnostics,
    ReplayError,
    ReplayRun,
    ReplayState,
    StepResult,
    StepStatus,
)
from .page import PageExecutor
from .resolver import LocatorResolver
from .scripts import action_js, scroll_js

logger = structlog.get_logger()

REPLAY_EVENTS = (
    "state-changed",
    "replay-started",
    "step-started",
    "step-completed",
    "step-failed",
    "replay-finished",
)

# Steps that act on the page rather than on a resolved element
PAGE_LEVEL_KINDS = frozenset({StepKind.NAVIGATE, StepKind.SCROLL})


class ReplayEngine:
    """Replays recorded flows against the current page."""

    def __init__(self, page: PageExecutor, settings=None):
        if settings is None:
            from src.config import get_settings

            settings = get_settings()
        self.page = page
        self.settings = settings
        self.resolver = LocatorResolver(page, poll_interval_ms=settings.replay_poll_interval_ms)
        self.state = ReplayState.IDLE
        self.flow: Optional[Flow] = None
        self.steps: list[Step] = []
        self.current_index = 0
        self.results: list[StepResult] = []
        self._abort = asyncio.Event()
        self._loop_done: Optional[asyncio.Event] = None
        self._listeners: dict[str, list[Callable[[Any], None]]] = defaultdict(list)
        self.log = logger.bind(component="replay_engine")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, fn: Callable[[Any], None]) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it."""
        if event not in REPLAY_EVENTS:
            raise ValueError(f"Unknown replay event: {event}")
        self._listeners[event].append(fn)
        return lambda: self._listeners[event].remove(fn)

    def _emit(self, event: str, payload: Any = None) -> None:
        for fn in list(self._listeners[event]):
            try:
                fn(payload)
            except Exception as e:
                self.log.error("Replay listener failed", replay_event=event, error=str(e))

    def _set_state(self, state: ReplayState) -> None:
        if state != self.state:
            self.state = state
            self._emit("state-changed", state)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        """True while a run or step loop is still executing."""
        return self._loop_done is not None and not self._loop_done.is_set()

    async def _claim(self) -> Optional[asyncio.Event]:
        """Take ownership of the page for one loop.

        Waits for an aborted loop to finish. Returns None while a live loop
        is running, otherwise the abort event the new loop must watch.
        """
        if self.busy:
            if not self._abort.is_set():
                return None
            await self._loop_done.wait()
            if self.busy:
                return None
        if self._abort.is_set():
            self._abort = asyncio.Event()
        self._loop_done = asyncio.Event()
        return self._abort

    def _release(self) -> None:
        if self._loop_done is not None:
            self._loop_done.set()

    def load(self, flow: Flow) -> None:
        """Prepare ``flow`` for manual stepping from its first enabled step."""
        if self.busy:
            raise RuntimeError("Cannot load a flow while a replay is running")
        self._load(flow)

    def _load(self, flow: Flow) -> None:
        self.flow = flow
        self.steps = list(flow.enabled_steps)
        self.current_index = 0
        self.results = []

    async def start_replay(self, flow: Flow) -> ReplayRun:
        """Run every enabled step of ``flow`` in order, stopping at the first failure."""
        abort = await self._claim()
        if abort is None:
            return ReplayRun(flow_id=flow.id, error="Replay already in progress")
        try:
            return await self._run_all(flow, abort)
        finally:
            self._release()

    async def _run_all(self, flow: Flow, abort: asyncio.Event) -> ReplayRun:
        self._load(flow)
        run = ReplayRun(flow_id=flow.id, total_steps=len(self.steps))
        replay_log = ReplayLogger(flow.id, flow.name)

        self._set_state(ReplayState.PLAYING)
        self._emit("replay-started", {"flow_id": flow.id, "total_steps": len(self.steps)})
        replay_log.run_started(len(self.steps))

        try:
            if flow.start_url:
                await self.page.navigate(flow.start_url)
                await self._sleep(self.settings.start_url_settle_ms, abort)
        except Exception as e:
            run.error = f"Failed to open start URL: {e}"
            self.log.error("Start URL navigation failed", url=flow.start_url, error=str(e))

        if run.error is None:
            for index, step in enumerate(self.steps):
                if abort.is_set():
                    replay_log.aborted(index)
                    run.aborted = True
                    break

                self.current_index = index
                result = await self._run_step(step, index, replay_log, abort)
                run.results.append(result)

                if result.status == StepStatus.ABORTED:
                    replay_log.aborted(index)
                    run.aborted = True
                    break
                if result.status == StepStatus.FAILED and self.settings.stop_on_failure:
                    break
            else:
                self.current_index = len(self.steps)

        self.results = run.results
        run.finished_at = datetime.now(timezone.utc)
        self._set_state(ReplayState.IDLE)
        replay_log.run_finished(run.passed, run.duration_ms)
        self._emit("replay-finished", run)
        return run

    async def step_over(self) -> ReplayCommandResult:
        """Execute the next enabled step, then pause."""
        abort = await self._claim()
        if abort is None:
            return ReplayCommandResult(False, "Cannot step in current state")
        try:
            return await self._step_once(abort)
        finally:
            self._release()

    async def _step_once(self, abort: asyncio.Event) -> ReplayCommandResult:
        if self.state not in (ReplayState.IDLE, ReplayState.PAUSED):
            return ReplayCommandResult(False, "Cannot step in current state")
        if self.flow is None or self.current_index >= len(self.steps):
            return ReplayCommandResult(False, "No more steps to execute")

        self._set_state(ReplayState.STEPPING)
        replay_log = ReplayLogger(self.flow.id, self.flow.name)

        if self.current_index == 0 and not self.results and self.flow.start_url:
            try:
                await self.page.navigate(self.flow.start_url)
                await self._sleep(self.settings.start_url_settle_ms, abort)
            except Exception as e:
                self.log.error("Start URL navigation failed", url=self.flow.start_url, error=str(e))
                self._set_state(ReplayState.PAUSED)
                return ReplayCommandResult(False, f"Failed to open start URL: {e}")

        if abort.is_set():
            return ReplayCommandResult(False, "Replay aborted")

        index = self.current_index
        result = await self._run_step(self.steps[index], index, replay_log, abort)
        self.results.append(result)

        if result.status == StepStatus.ABORTED:
            # stop_replay already moved us to idle
            return ReplayCommandResult(False, "Replay aborted", result)

        self.current_index += 1
        self._set_state(ReplayState.PAUSED)
        return ReplayCommandResult(True, "", result)

    async def stop_replay(self) -> ReplayCommandResult:
        """Abort the current run. Always succeeds."""
        self._abort.set()
        self._set_state(ReplayState.IDLE)
        self.log.info("Replay stop requested", step_index=self.current_index)
        return ReplayCommandResult(True, "Replay stopped")

    def get_state(self) -> dict:
        return {
            "state": self.state.value,
            "flow_id": self.flow.id if self.flow else None,
            "current_step": self.current_index,
            "total_steps": len(self.steps),
            "results": [r.to_dict() for r in self.results],
        }

    # ------------------------------------------------------------------
    # Step execution
    # ------------------------------------------------------------------

    async def _run_step(
        self, step: Step, index: int, replay_log: ReplayLogger, abort: asyncio.Event
    ) -> StepResult:
        self._emit("step-started", {
            "step_id": step.id,
            "index": index,
            "total": len(self.steps),
            "description": step.description,
        })
        replay_log.step_started(index, step.kind.value, step.description)

        result = await self.execute_step(step, abort)

        if result.status == StepStatus.PASSED:
            replay_log.step_completed(
                index,
                step.kind.value,
                result.diagnostics.duration_ms,
                result.diagnostics.fallback_used,
            )
        elif result.status == StepStatus.FAILED:
            replay_log.step_failed(index, step.kind.value, result.error or "")

        self._emit("step-completed", result)
        if result.status == StepStatus.FAILED:
            self._emit("step-failed", result)
        return result

    async def execute_step(self, step: Step, abort: Optional[asyncio.Event] = None) -> StepResult:
        """Resolve and apply one step. Never raises."""
        if abort is None:
            abort = self._abort
        if self.flow is not None:
            step = resolve_variables(self.flow, step)

        started = time.monotonic()
        diagnostics = ReplayDiagnostics(wait_kind=step.wait.kind)
        status = StepStatus.PASSED
        error: Optional[str] = None

        try:
            if step.kind in PAGE_LEVEL_KINDS:
                await self._apply_page_step(step)
            else:
                resolution = await self.resolver.resolve(step.locators, step.wait, abort)
                diagnostics.locator_used = resolution.locator
                diagnostics.failed_locators = resolution.failures
                diagnostics.fallback_used = resolution.fallback_used

                if resolution.aborted:
                    status = StepStatus.ABORTED
                elif not resolution.found:
                    raise LocatorResolutionFailure("Element not found with any locator")
                else:
                    await self._apply(step, resolution.locator)
        except ReplayError as e:
            status = StepStatus.FAILED
            error = str(e)
        except Exception as e:
            status = StepStatus.FAILED
            error = str(e)
            self.log.error("Unexpected step error", step_id=step.id, error=error)

        diagnostics.duration_ms = int((time.monotonic() - started) * 1000)
        return StepResult(
            step_id=step.id,
            order=step.order,
            kind=step.kind,
            description=step.description,
            status=status,
            diagnostics=diagnostics,
            error=error,
        )

    async def _apply(self, step: Step, locator) -> None:
        script = action_js(step.kind, locator, step.test_value, step.element)
        try:
            outcome = await self.page.evaluate(script)
        except Exception as e:
            raise ActionApplicationFailure(f"{step.kind.value} failed: {e}") from e

        if isinstance(outcome, dict) and not outcome.get("ok", True):
            raise ActionApplicationFailure(f"{step.kind.value} failed: {outcome.get('error', 'unknown error')}")

        if step.kind == StepKind.FILE:
            self.log.warning("File selection is not replayed", step_id=step.id)

    async def _apply_page_step(self, step: Step) -> None:
        if step.kind == StepKind.SCROLL:
            await self.page.evaluate(scroll_js(self.settings.scroll_step_px))
            return

        url = step.test_data.get("url") or step.url
        if not url:
            raise ActionApplicationFailure("Navigate step has no URL")
        await self.page.navigate(url)
        await self.page.wait_for_page(step.wait.kind, self._settle_ms(step.wait.kind))

    def _settle_ms(self, kind: WaitKind) -> int:
        if kind == WaitKind.NETWORK_IDLE:
            return self.settings.network_idle_settle_ms
        if kind == WaitKind.NAVIGATION:
            return self.settings.navigation_settle_ms
        return self.settings.default_settle_ms

    async def _sleep(self, ms: int, abort: asyncio.Event) -> None:
        """Sleep that returns early on abort."""
        try:
            await asyncio.wait_for(abort.wait(), timeout=ms / 1000)
        except asyncio.TimeoutError:
            pass
