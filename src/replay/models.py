"""Data models for replay resolution and step execution.

This module defines the structures the ReplayEngine produces:
- ReplayState: the engine's state machine
- ReplayDiagnostics: which locator won and which ones failed, per step
- StepResult: outcome of one step
- ReplayRun: outcome of a full run
- ReplayError and subclasses: raised inside a step, caught at its boundary
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from src.locators.models import Locator
from src.recording.models import StepKind, WaitKind


class ReplayState(str, Enum):
    """Replay engine state.

    idle -> playing -> idle for a full run; idle/paused -> stepping -> paused
    for manual stepping. An abort returns to idle from any state.
    """

    IDLE = "idle"
    PLAYING = "playing"
    STEPPING = "stepping"
    PAUSED = "paused"


class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    ABORTED = "aborted"


class ReplayError(Exception):
    """Base class for failures inside a single replay step."""


class LocatorResolutionFailure(ReplayError):
    """No locator satisfied the step's wait condition in time."""


class ActionApplicationFailure(ReplayError):
    """The action script failed against a resolved element."""


@dataclass
class LocatorFailure:
    """A locator that was tried and did not resolve."""

    locator: Locator
    error: str

    def to_dict(self) -> dict:
        return {"locator": self.locator.to_dict(), "error": self.error}


@dataclass
class ReplayDiagnostics:
    """Per-step resolution details. Never written back onto the Step."""

    locator_used: Optional[Locator] = None
    failed_locators: list[LocatorFailure] = field(default_factory=list)
    fallback_used: bool = False
    wait_kind: WaitKind = WaitKind.VISIBLE
    duration_ms: int = 0

    def to_dict(self) -> dict:
        return {
            "locator_used": self.locator_used.to_dict() if self.locator_used else None,
            "failed_locators": [f.to_dict() for f in self.failed_locators],
            "fallback_used": self.fallback_used,
            "wait_kind": self.wait_kind.value,
            "duration_ms": self.duration_ms,
        }


@dataclass
class StepResult:
    """Outcome of executing one step."""

    step_id: str
    order: int
    kind: StepKind
    description: str
    status: StepStatus
    diagnostics: ReplayDiagnostics = field(default_factory=ReplayDiagnostics)
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def passed(self) -> bool:
        return self.status == StepStatus.PASSED

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_id": self.step_id,
            "order": self.order,
            "kind": self.kind.value,
            "description": self.description,
            "status": self.status.value,
            "error": self.error,
            "diagnostics": self.diagnostics.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class ReplayRun:
    """Outcome of a full replay run."""

    flow_id: str
    total_steps: int = 0
    results: list[StepResult] = field(default_factory=list)
    aborted: bool = False
    error: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def passed(self) -> bool:
        """True when nothing went wrong and every executed step passed."""
        if self.aborted or self.error:
            return False
        return all(r.passed for r in self.results)

    @property
    def failed_step(self) -> Optional[StepResult]:
        return next((r for r in self.results if r.status == StepStatus.FAILED), None)

    @property
    def duration_ms(self) -> int:
        if self.finished_at is None:
            return 0
        return int((self.finished_at - self.started_at).total_seconds() * 1000)

    def to_dict(self) -> dict[str, Any]:
        return {
            "flow_id": self.flow_id,
            "total_steps": self.total_steps,
            "passed": self.passed,
            "aborted": self.aborted,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class ReplayCommandResult:
    """Reply to a replay control command."""

    success: bool
    message: str = ""
    result: Optional[StepResult] = None
