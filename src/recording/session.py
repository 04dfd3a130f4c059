"""Recording session: the explicit per-recording context.

Owns the capture subscription, the step synthesizer and its dedup state
for exactly one recording. Constructed by the orchestrator when recording
starts and discarded when it stops.

Example:
    session = RecordingSession(PlaywrightCaptureSurface(page), store)
    await session.start()
    ...
    result = await session.stop()
"""

import asyncio
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import structlog

from src.locators.generator import LocatorGenerator
from src.utils.logging import LogContext

from .capture import CaptureChannel, CaptureSurface
from .flow import Flow, FlowStore
from .models import RawInteractionEvent, Step
from .synthesizer import StepSynthesizer

logger = structlog.get_logger()


class RecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"


@dataclass
class SessionResult:
    """Outcome of a session transition."""

    success: bool
    message: str = ""
    state: Optional[RecordingState] = None
    flow_id: Optional[str] = None
    step_count: int = 0


class RecordingSession:
    """Drives one recording from start to stop."""

    def __init__(
        self,
        surface: CaptureSurface,
        store: FlowStore,
        settings=None,
        generator: Optional[LocatorGenerator] = None,
    ):
        if settings is None:
            from src.config import get_settings

            settings = get_settings()
        self.id = f"rec_{uuid.uuid4().hex[:12]}"
        self.surface = surface
        self.store = store
        self.settings = settings
        self.generator = generator or LocatorGenerator()
        self.state = RecordingState.IDLE
        self.flow: Optional[Flow] = None
        self.start_url = ""
        self.synthesizer: Optional[StepSynthesizer] = None
        self.channel: Optional[CaptureChannel] = None
        self._pump: Optional[asyncio.Task] = None
        self.log = logger.bind(component="recording_session", session_id=self.id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, flow_id: Optional[str] = None) -> SessionResult:
        """Start recording into an existing flow, or a new untitled one."""
        if self.state != RecordingState.IDLE:
            return SessionResult(False, "Already recording", self.state)

        if flow_id and self.store.has_flow(flow_id):
            self.flow = self.store.get_flow(flow_id)
        else:
            self.flow = self.store.create_flow("Untitled Recording")

        self.start_url = await self.surface.current_url()
        if not self.flow.start_url:
            self.flow.start_url = self.start_url

        self.synthesizer = StepSynthesizer(
            generator=self.generator,
            settings=self.settings,
            on_step=self._on_step,
            on_step_updated=self._on_step_updated,
            start_order=len(self.flow.steps),
        )
        self.channel = CaptureChannel()
        await self.surface.subscribe(self.channel)
        self._pump = asyncio.create_task(self._consume(self.channel))

        self.state = RecordingState.RECORDING
        self.log.info("Recording started", flow_id=self.flow.id, start_url=self.start_url)
        return SessionResult(True, "Recording started", self.state, self.flow.id)

    async def pause(self) -> SessionResult:
        if self.state != RecordingState.RECORDING:
            return SessionResult(False, "Not recording", self.state)
        await self.surface.pause()
        self.state = RecordingState.PAUSED
        self.log.info("Recording paused")
        return SessionResult(True, "Recording paused", self.state, self.flow.id)

    async def resume(self) -> SessionResult:
        if self.state != RecordingState.PAUSED:
            return SessionResult(False, "Not paused", self.state)
        await self.surface.resume()
        self.state = RecordingState.RECORDING
        self.log.info("Recording resumed")
        return SessionResult(True, "Recording resumed", self.state, self.flow.id)

    async def stop(self) -> SessionResult:
        """Stop recording and return to the start URL.

        Buffered clicks are flushed into steps; timers and dedup state
        are discarded.
        """
        if self.state == RecordingState.IDLE:
            return SessionResult(False, "Not recording", self.state)

        await self.surface.unsubscribe()
        if self.channel is not None:
            self.channel.close()
        if self._pump is not None:
            await self._pump
            self._pump = None

        flushed = self.synthesizer.flush_pending()
        self.synthesizer.reset()
        self.synthesizer = None
        self.channel = None
        self.state = RecordingState.IDLE

        if self.start_url:
            try:
                await self.surface.navigate(self.start_url)
            except Exception as e:
                self.log.warning("Failed to navigate back to start URL", url=self.start_url, error=str(e))

        step_count = len(self.flow.steps)
        self.log.info(
            "Recording stopped",
            flow_id=self.flow.id,
            step_count=step_count,
            flushed_clicks=len(flushed),
        )
        return SessionResult(True, "Recording stopped", self.state, self.flow.id, step_count)

    def get_state(self) -> dict:
        return {
            "state": self.state.value,
            "flow_id": self.flow.id if self.flow else None,
            "step_count": len(self.flow.steps) if self.flow else 0,
        }

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def handle_event(self, raw: Union[RawInteractionEvent, dict]) -> Optional[Step]:
        """Feed one raw event to the synthesizer. Ignored unless recording."""
        if self.state != RecordingState.RECORDING or self.synthesizer is None:
            return None
        return self.synthesizer.process(raw)

    async def _consume(self, channel: CaptureChannel) -> None:
        with LogContext(session_id=self.id, flow_id=self.flow.id):
            async for message in channel:
                self.handle_event(message)

    def _on_step(self, step: Step) -> None:
        self.store.add_step(self.flow.id, step)

    def _on_step_updated(self, step: Step) -> None:
        self.store.update_step(
            self.flow.id,
            step.id,
            test_data=step.test_data,
            description=step.description,
        )
