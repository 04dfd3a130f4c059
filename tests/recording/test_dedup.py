"""Tests for per-session deduplication state."""

from src.recording.dedup import DedupState, PendingClickBuffer, RecentActionLedger
from src.recording.models import ActionKind, ElementDescriptor, RawInteractionEvent, Step, StepKind


def click(identity_xpath, timestamp):
    return RawInteractionEvent(
        action=ActionKind.CLICK,
        element=ElementDescriptor(tag="input", absolute_xpath=identity_xpath),
        timestamp=timestamp,
    )


class TestRecentActionLedger:
    """Tests for RecentActionLedger."""

    def test_entries_expire(self):
        """Test entries older than the window are forgotten."""
        ledger = RecentActionLedger(window_ms=600)
        ledger.record("a", ActionKind.INPUT, StepKind.TYPE, 1000)

        assert ledger.recent("a", 1500) is not None
        assert ledger.recent("a", 1601) is None
        assert len(ledger) == 0

    def test_repeated_toggle(self):
        """Test a second toggle on the same element is suppressed."""
        ledger = RecentActionLedger()
        ledger.record("a", ActionKind.CLICK, StepKind.TOGGLE, 1000)
        assert ledger.should_suppress("a", ActionKind.CHANGE, StepKind.TOGGLE, 1100, False) == "repeated_toggle"

    def test_text_echo(self):
        """Test input/change echoes on text controls."""
        ledger = RecentActionLedger()
        ledger.record("a", ActionKind.INPUT, StepKind.TYPE, 1000)
        assert ledger.should_suppress("a", ActionKind.CHANGE, StepKind.TYPE, 1100, True) == "change_after_input"

        ledger.record("b", ActionKind.CHANGE, StepKind.TYPE, 1000)
        assert ledger.should_suppress("b", ActionKind.INPUT, StepKind.TYPE, 1100, True) == "input_after_change"

    def test_other_elements_unaffected(self):
        """Test suppression is per element."""
        ledger = RecentActionLedger()
        ledger.record("a", ActionKind.CLICK, StepKind.TOGGLE, 1000)
        assert ledger.should_suppress("b", ActionKind.CLICK, StepKind.TOGGLE, 1100, False) is None

    def test_prune(self):
        """Test pruning drops stale entries only."""
        ledger = RecentActionLedger(window_ms=100)
        ledger.record("old", ActionKind.CLICK, StepKind.CLICK, 0)
        ledger.record("new", ActionKind.CLICK, StepKind.CLICK, 950)
        ledger.prune(1000)
        assert len(ledger) == 1


class TestPendingClickBuffer:
    """Tests for PendingClickBuffer."""

    def test_newer_click_replaces(self):
        """Test one entry per element identity."""
        buffer = PendingClickBuffer()
        first = click("/a", 1000)
        assert buffer.hold(first) is None
        assert buffer.hold(click("/a", 1100)) is first
        assert len(buffer) == 1

    def test_expired(self):
        """Test expiry is relative to each click's timestamp."""
        buffer = PendingClickBuffer()
        buffer.hold(click("/a", 1000))
        buffer.hold(click("/b", 1500))
        assert buffer.expired(1700, 600) == ["/a"]

    def test_drain_preserves_order(self):
        """Test draining returns clicks in arrival order."""
        buffer = PendingClickBuffer()
        buffer.hold(click("/b", 1))
        buffer.hold(click("/a", 2))
        assert [e.element.identity for e in buffer.drain()] == ["/b", "/a"]
        assert "/a" not in buffer

    def test_drain_except_keeps_one_identity(self):
        """Test draining all but one element leaves that element held."""
        buffer = PendingClickBuffer()
        buffer.hold(click("/a", 1))
        buffer.hold(click("/b", 2))
        buffer.hold(click("/c", 3))

        drained = buffer.drain_except("/b")

        assert [e.element.identity for e in drained] == ["/a", "/c"]
        assert "/b" in buffer
        assert len(buffer) == 1


class TestDedupState:
    """Tests for DedupState."""

    def test_open_text_step_only_when_latest(self):
        """Test a text step is open only while it is the last step."""
        state = DedupState()
        typed = Step(order=1, kind=StepKind.TYPE)
        state.remember(typed, "/a")
        assert state.open_text_step("/a") is typed

        state.remember(Step(order=2, kind=StepKind.CLICK), "/b")
        assert state.open_text_step("/a") is None

    def test_reset(self):
        """Test reset clears everything."""
        state = DedupState(window_ms=600)
        state.ledger.record("a", ActionKind.CLICK, StepKind.CLICK, 0)
        state.pending_clicks.hold(click("/a", 0))
        state.remember(Step(order=1, kind=StepKind.TYPE), "/a")
        state.reset()

        assert len(state.ledger) == 0
        assert len(state.pending_clicks) == 0
        assert state.last_step is None
        assert state.last_text_steps == {}
