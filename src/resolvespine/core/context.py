"""
Explicit call context threaded through resolver, providers and dispatch.

A ``CallContext`` is passed as the first argument of every provider call.
It carries two things:

- **deadline:** a ``time.monotonic()`` timestamp after which the resolver
  stops dispatching (checked between calls, never preempting one)
- **trace:** an OpenTelemetry ``Context`` holding the current span and
  baggage, injected into remote provider requests

Contexts are immutable; the ``with_*`` helpers return derived copies, the
same way ``LogContext.merge`` works in the logging layer.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace

from opentelemetry.context import Context


@dataclass(frozen=True)
class CallContext:
    """Request-scoped deadline and trace context."""

    deadline: float | None = None
    trace: Context = field(default_factory=Context)

    @classmethod
    def background(cls) -> CallContext:
        """An empty context: no deadline, no trace."""
        return cls()

    def with_timeout(self, seconds: float) -> CallContext:
        """Derive a context whose deadline is ``seconds`` from now.

        An existing earlier deadline is kept.
        """
        deadline = time.monotonic() + seconds
        if self.deadline is not None:
            deadline = min(deadline, self.deadline)
        return replace(self, deadline=deadline)

    def with_deadline(self, deadline: float | None) -> CallContext:
        return replace(self, deadline=deadline)

    def with_trace(self, trace: Context) -> CallContext:
        return replace(self, trace=trace)

    def expired(self) -> bool:
        return self.deadline is not None and self.deadline < time.monotonic()

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or None."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())


__all__ = ["CallContext"]
