"""Replay resolution and step execution.

Replays a stored flow against the current page:
- Ranked locator fallback with polling per step
- An action dispatch table keyed by step intent
- Per-step diagnostics and fail-fast full runs
- Manual single-stepping and cooperative abort
"""

from .executor import REPLAY_EVENTS, ReplayEngine
from .models import (
    ActionApplicationFailure,
    LocatorFailure,
    LocatorResolutionFailure,
    ReplayCommandResult,
    ReplayDiagnostics,
    ReplayError,
    ReplayRun,
    ReplayState,
    StepResult,
    StepStatus,
)
from .page import PageExecutor, PlaywrightPageExecutor
from .resolver import LocatorResolver, Resolution

__all__ = [
    # Models
    "ReplayState",
    "StepStatus",
    "LocatorFailure",
    "ReplayDiagnostics",
    "StepResult",
    "ReplayRun",
    "ReplayCommandResult",
    "ReplayError",
    "LocatorResolutionFailure",
    "ActionApplicationFailure",
    # Page
    "PageExecutor",
    "PlaywrightPageExecutor",
    # Engine
    "LocatorResolver",
    "Resolution",
    "ReplayEngine",
    "REPLAY_EVENTS",
]
