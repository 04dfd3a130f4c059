"""Interaction capture and step synthesis.

Turns the raw browser events of a recording session into a minimal,
canonical sequence of Steps:
- Intent classification keyed by action, control kind and interaction type
- Pending-click buffering and trailing-window deduplication
- In-place updates of the step being typed into
- Ranked locators, descriptions, test data and wait inference per step
"""

from .capture import CaptureChannel, CaptureSurface, PlaywrightCaptureSurface
from .capture_script import CaptureScriptConfig, CaptureScriptGenerator
from .classifier import IntentClassifier
from .coalescer import Coalescer
from .control_kind import classify_control
from .dedup import DedupState, PendingClickBuffer, RecentActionLedger
from .flow import (
    Flow,
    FlowNotFoundError,
    FlowStore,
    InMemoryFlowStore,
    StepNotFoundError,
    resolve_variables,
)
from .models import (
    ActionKind,
    ControlKind,
    ElementDescriptor,
    RawInteractionEvent,
    Step,
    StepKind,
    WaitKind,
    WaitSpec,
)
from .session import RecordingSession, RecordingState, SessionResult
from .synthesizer import StepSynthesizer, describe_step, extract_test_data

__all__ = [
    # Models
    "ActionKind",
    "ControlKind",
    "StepKind",
    "WaitKind",
    "WaitSpec",
    "ElementDescriptor",
    "RawInteractionEvent",
    "Step",
    "classify_control",
    # Synthesis
    "IntentClassifier",
    "Coalescer",
    "DedupState",
    "RecentActionLedger",
    "PendingClickBuffer",
    "StepSynthesizer",
    "describe_step",
    "extract_test_data",
    # Flows
    "Flow",
    "FlowStore",
    "InMemoryFlowStore",
    "FlowNotFoundError",
    "StepNotFoundError",
    "resolve_variables",
    # Capture
    "CaptureChannel",
    "CaptureSurface",
    "PlaywrightCaptureSurface",
    "CaptureScriptConfig",
    "CaptureScriptGenerator",
    # Session
    "RecordingSession",
    "RecordingState",
    "SessionResult",
]
