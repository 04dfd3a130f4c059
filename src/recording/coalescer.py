"""Non-blocking keyed timers for deferred capture-side work.

Each key owns at most one timer. Work can be cancelled (discarded) or
flushed (run immediately) so a recording session can stop deterministically.
Without a running event loop nothing fires on its own; held work then only
runs through ``flush``.
"""

import asyncio
from typing import Callable, Optional

import structlog

logger = structlog.get_logger()


class Coalescer:
    """Owns timer handles keyed by an arbitrary string."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: dict[str, Optional[asyncio.TimerHandle]] = {}
        self._callbacks: dict[str, Callable[[], None]] = {}
        self.log = logger.bind(component="coalescer")

    def _get_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def schedule(self, key: str, delay_ms: float, callback: Callable[[], None]) -> None:
        """Run ``callback`` after ``delay_ms`` unless cancelled or rescheduled."""
        self.cancel(key)
        self._callbacks[key] = callback
        loop = self._get_loop()
        self._handles[key] = (
            loop.call_later(max(delay_ms, 0) / 1000, self._fire, key) if loop else None
        )

    def cancel(self, key: str) -> bool:
        """Discard pending work for ``key``. Returns True if any was pending."""
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()
        return self._callbacks.pop(key, None) is not None

    def cancel_all(self) -> int:
        keys = list(self._callbacks)
        for key in keys:
            self.cancel(key)
        return len(keys)

    def flush(self, key: Optional[str] = None) -> int:
        """Run pending work now, for one key or all keys in schedule order."""
        keys = [key] if key is not None else list(self._callbacks)
        ran = 0
        for k in keys:
            if k in self._callbacks:
                self._fire(k)
                ran += 1
        return ran

    def _fire(self, key: str) -> None:
        handle = self._handles.pop(key, None)
        if handle is not None:
            handle.cancel()
        callback = self._callbacks.pop(key, None)
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            self.log.error("Deferred callback failed", key=key, error=str(e))

    def is_pending(self, key: str) -> bool:
        return key in self._callbacks

    @property
    def pending(self) -> int:
        return len(self._callbacks)
