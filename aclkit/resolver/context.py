"""Cancellation and deadline carrier for resolutions."""

from __future__ import annotations

import threading
import time
import weakref
from collections.abc import Callable

from aclkit.errors import CancellationError

DEADLINE_EXCEEDED = "deadline exceeded"


class ResolveContext:
    """Explicit, thread-safe cancellation signal passed through a resolution.

    A context is cancelled when cancel() is called on it or on any parent,
    or when its deadline passes. Collaborators receive the context and may
    poll `cancelled`, call raise_if_cancelled(), or block on wait().

    Usage:
        ctx = ResolveContext(timeout=0.5)
        acl = resolver.resolve_secret(secret, ctx)

        # From another thread
        ctx.cancel("client went away")
    """

    def __init__(
        self,
        timeout: float | None = None,
        parent: "ResolveContext | None" = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._children: weakref.WeakSet[ResolveContext] = weakref.WeakSet()

        deadline = clock() + timeout if timeout is not None else None
        if parent is not None and parent._deadline is not None:
            deadline = parent._deadline if deadline is None else min(deadline, parent._deadline)
        self._deadline = deadline

        if parent is not None:
            parent._adopt(self)

    @classmethod
    def background(cls) -> "ResolveContext":
        """A context that is never cancelled unless cancel() is called."""
        return cls()

    def with_timeout(self, seconds: float) -> "ResolveContext":
        """Child context that also expires after `seconds`."""
        return ResolveContext(timeout=seconds, parent=self, clock=self._clock)

    def _adopt(self, child: "ResolveContext") -> None:
        with self._lock:
            self._children.add(child)
            reason = self._reason
        if reason is not None:
            child.cancel(reason)

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel this context and every child context."""
        with self._lock:
            if self._reason is None:
                self._reason = reason
            self._event.set()
            children = list(self._children)
        for child in children:
            child.cancel(reason)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    @property
    def reason(self) -> str | None:
        if self._reason is not None:
            return self._reason
        if self.cancelled:
            return DEADLINE_EXCEEDED
        return None

    def raise_if_cancelled(self) -> None:
        """Raises CancellationError if the context is cancelled."""
        if self.cancelled:
            raise CancellationError(self.reason or "cancelled")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or `timeout` elapses; returns `cancelled`."""
        remaining = self.remaining()
        if remaining is not None:
            timeout = remaining if timeout is None else min(timeout, remaining)
        self._event.wait(timeout)
        return self.cancelled

    def __repr__(self) -> str:
        state = f"cancelled: {self.reason}" if self.cancelled else "active"
        return f"ResolveContext({state})"
