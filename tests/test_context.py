"""Tests for ResolveContext cancellation and deadlines."""

import threading

import pytest

from aclkit import CancellationError, ResolveContext


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestResolveContext:
    """Tests for explicit cancellation."""

    def test_background_is_active(self):
        ctx = ResolveContext.background()
        assert not ctx.cancelled
        assert ctx.reason is None
        assert ctx.remaining() is None
        ctx.raise_if_cancelled()

    def test_cancel(self):
        ctx = ResolveContext()
        ctx.cancel("stop")
        assert ctx.cancelled
        with pytest.raises(CancellationError) as exc_info:
            ctx.raise_if_cancelled()
        assert exc_info.value.reason == "stop"
        assert exc_info.value.code == "cancelled"

    def test_first_reason_wins(self):
        ctx = ResolveContext()
        ctx.cancel("first")
        ctx.cancel("second")
        assert ctx.reason == "first"

    def test_cancel_propagates_to_children(self):
        parent = ResolveContext()
        child = parent.with_timeout(60)
        parent.cancel("parent stopped")
        assert child.cancelled
        assert child.reason == "parent stopped"

    def test_child_of_cancelled_parent_starts_cancelled(self):
        parent = ResolveContext()
        parent.cancel("gone")
        assert parent.with_timeout(60).cancelled

    def test_child_cancel_does_not_affect_parent(self):
        parent = ResolveContext()
        parent.with_timeout(60).cancel()
        assert not parent.cancelled

    def test_wait_returns_when_cancelled(self):
        ctx = ResolveContext()
        timer = threading.Timer(0.01, ctx.cancel)
        timer.start()
        assert ctx.wait(5)
        timer.join()


class TestDeadline:
    """Tests for timeouts."""

    def test_deadline_passes(self):
        clock = FakeClock()
        ctx = ResolveContext(timeout=1.0, clock=clock)
        assert ctx.remaining() == 1.0
        clock.now += 1.0
        assert ctx.cancelled
        assert ctx.remaining() == 0.0
        assert ctx.reason == "deadline exceeded"

    def test_child_inherits_earlier_parent_deadline(self):
        clock = FakeClock()
        parent = ResolveContext(timeout=1.0, clock=clock)
        child = parent.with_timeout(10.0)
        assert child.deadline == parent.deadline

    def test_child_keeps_earlier_own_deadline(self):
        clock = FakeClock()
        parent = ResolveContext(timeout=10.0, clock=clock)
        child = parent.with_timeout(1.0)
        assert child.deadline == 101.0

    def test_wait_is_bounded_by_deadline(self):
        ctx = ResolveContext(timeout=0.01)
        assert ctx.wait(5)
