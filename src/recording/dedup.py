"""Per-session deduplication state owned by the step synthesizer."""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Optional

from .models import ActionKind, RawInteractionEvent, Step, StepKind

REPEATABLE_KINDS = frozenset({StepKind.TOGGLE, StepKind.RADIO})


@dataclass
class LedgerEntry:
    action: ActionKind
    kind: StepKind
    timestamp: float


class RecentActionLedger:
    """Trailing-window record of the last accepted action per element."""

    def __init__(self, window_ms: float = 600):
        self.window_ms = window_ms
        self._entries: dict[str, LedgerEntry] = {}

    def record(self, identity: str, action: ActionKind, kind: StepKind, timestamp: float) -> None:
        self._entries[identity] = LedgerEntry(action, kind, timestamp)

    def recent(self, identity: str, now: float) -> Optional[LedgerEntry]:
        """Return the entry for ``identity`` if it is still inside the window."""
        entry = self._entries.get(identity)
        if entry is None:
            return None
        if now - entry.timestamp > self.window_ms:
            del self._entries[identity]
            return None
        return entry

    def should_suppress(
        self,
        identity: str,
        action: ActionKind,
        kind: StepKind,
        now: float,
        text_like: bool,
    ) -> Optional[str]:
        """Return the suppression reason, or None if the event is new.

        Between an input and a change on the same text element, whichever
        was accepted first wins.
        """
        entry = self.recent(identity, now)
        if entry is None:
            return None

        if kind in REPEATABLE_KINDS and entry.kind == kind:
            return "repeated_toggle"

        if text_like:
            if action == ActionKind.CHANGE and entry.action == ActionKind.INPUT:
                return "change_after_input"
            if action == ActionKind.INPUT and entry.action == ActionKind.CHANGE:
                return "input_after_change"

        return None

    def prune(self, now: float) -> None:
        stale = [k for k, e in self._entries.items() if now - e.timestamp > self.window_ms]
        for key in stale:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class PendingClickBuffer:
    """Holds clicks on text-entry controls until their intent is known.

    At most one entry per element identity; a newer click replaces the
    older one.
    """

    def __init__(self):
        self._clicks: "OrderedDict[str, RawInteractionEvent]" = OrderedDict()

    def hold(self, event: RawInteractionEvent) -> Optional[RawInteractionEvent]:
        identity = event.element.identity
        replaced = self._clicks.pop(identity, None)
        self._clicks[identity] = event
        return replaced

    def take(self, identity: str) -> Optional[RawInteractionEvent]:
        return self._clicks.pop(identity, None)

    def expired(self, now: float, window_ms: float) -> list[str]:
        return [k for k, e in self._clicks.items() if now - e.timestamp > window_ms]

    def drain(self) -> list[RawInteractionEvent]:
        events = list(self._clicks.values())
        self._clicks.clear()
        return events

    def drain_except(self, identity: str) -> list[RawInteractionEvent]:
        """Remove and return every held click not on ``identity``, oldest first."""
        others = [k for k in self._clicks if k != identity]
        return [self._clicks.pop(k) for k in others]

    def __contains__(self, identity: str) -> bool:
        return identity in self._clicks

    def __len__(self) -> int:
        return len(self._clicks)


@dataclass
class DedupState:
    """Everything the synthesizer remembers between events.

    Scoped to one recording session and discarded when it stops.
    """

    window_ms: float = 600
    ledger: RecentActionLedger = field(init=False)
    pending_clicks: PendingClickBuffer = field(default_factory=PendingClickBuffer)
    last_text_steps: dict[str, Step] = field(default_factory=dict)
    last_step: Optional[Step] = None

    def __post_init__(self):
        self.ledger = RecentActionLedger(self.window_ms)

    def open_text_step(self, identity: str) -> Optional[Step]:
        """Return the text step for ``identity`` only if it is the most recent step."""
        step = self.last_text_steps.get(identity)
        if step is not None and step is self.last_step:
            return step
        return None

    def remember(self, step: Step, identity: Optional[str] = None) -> None:
        self.last_step = step
        if identity is not None and step.kind.is_text_entry:
            self.last_text_steps[identity] = step

    def reset(self) -> None:
        self.ledger.clear()
        self.pending_clicks.drain()
        self.last_text_steps.clear()
        self.last_step = None
