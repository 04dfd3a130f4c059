"""Capture surface abstraction and the message channel it posts into.

The capture surface lives next to the observed page and must never block
it, so raw events cross into the recording session through an asyncio
queue. Subscribing and unsubscribing are explicit operations on a
capability object handed to the session.
"""

import asyncio
import time
from typing import Any, AsyncIterator, Optional, Protocol

import structlog

from .capture_script import CaptureScriptGenerator

logger = structlog.get_logger()

_CLOSED = object()


class CaptureChannel:
    """One-way asynchronous channel of raw event payloads."""

    def __init__(self, maxsize: int = 0):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self._closed = False
        self.dropped = 0
        self.log = logger.bind(component="capture_channel")

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, message: dict) -> bool:
        """Enqueue a payload without blocking. Returns False if it was dropped."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            self.log.warning("Capture channel full, event dropped", dropped=self.dropped)
            return False

    async def get(self) -> Optional[dict]:
        """Next payload, or None once the channel is closed and drained."""
        message = await self._queue.get()
        if message is _CLOSED:
            return None
        return message

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Drop the oldest message to fit the sentinel
            self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    def qsize(self) -> int:
        return self._queue.qsize()

    async def __aiter__(self) -> AsyncIterator[dict]:
        while True:
            message = await self.get()
            if message is None:
                return
            yield message


class CaptureSurface(Protocol):
    """Capability the recording session uses to observe a page."""

    async def subscribe(self, channel: CaptureChannel) -> None: ...

    async def unsubscribe(self) -> None: ...

    async def pause(self) -> None: ...

    async def resume(self) -> None: ...

    async def current_url(self) -> str: ...

    async def navigate(self, url: str) -> None: ...


class PlaywrightCaptureSurface:
    """Capture surface backed by a Playwright page.

    Injects the capture script into every document and forwards its
    payloads, plus main-frame navigations, into the subscribed channel.
    """

    def __init__(self, page, script: Optional[CaptureScriptGenerator] = None):
        """
        Initialize with a Playwright page.

        Args:
            page: Playwright page object
            script: Capture script generator
        """
        self.page = page
        self.script = script or CaptureScriptGenerator()
        self._channel: Optional[CaptureChannel] = None
        self._installed = False
        self.log = logger.bind(component="capture_surface")

    @property
    def subscribed(self) -> bool:
        return self._channel is not None

    async def subscribe(self, channel: CaptureChannel) -> None:
        """Start forwarding page events into ``channel``."""
        source = self.script.generate()
        if not self._installed:
            # Bindings cannot be removed, so install once and gate on the channel
            await self.page.expose_binding(self.script.config.binding_name, self._on_binding)
            await self.page.add_init_script(source)
            self._installed = True

        self._channel = channel
        self.page.on("framenavigated", self._on_navigated)
        await self.page.evaluate(source)
        await self.page.evaluate(self.script.control_call("start"))
        self.log.info("Capture subscribed", url=self.page.url)

    async def unsubscribe(self) -> None:
        if self._channel is None:
            return
        self._channel = None
        self.page.remove_listener("framenavigated", self._on_navigated)
        try:
            await self.page.evaluate(self.script.control_call("stop"))
        except Exception as e:
            self.log.warning("Failed to stop capture script", error=str(e))
        self.log.info("Capture unsubscribed")

    async def pause(self) -> None:
        await self.page.evaluate(self.script.control_call("pause"))

    async def resume(self) -> None:
        await self.page.evaluate(self.script.control_call("resume"))

    async def current_url(self) -> str:
        return self.page.url

    async def navigate(self, url: str) -> None:
        await self.page.goto(url, wait_until="load")

    def _on_binding(self, source: Any, payload: Any) -> None:
        if self._channel is not None and isinstance(payload, dict):
            self._channel.post(payload)

    def _on_navigated(self, frame) -> None:
        if self._channel is None or frame != self.page.main_frame:
            return
        self._channel.post({
            "action": "navigate",
            "url": frame.url,
            "timestamp": time.time() * 1000,
        })
