"""Tests for resolvespine.core.context: deadlines and trace carriers."""

from __future__ import annotations

import time

from opentelemetry.context import Context

from resolvespine.core.context import CallContext


class TestCallContext:
    def test_background(self):
        ctx = CallContext.background()
        assert ctx.deadline is None
        assert not ctx.expired()
        assert ctx.remaining() is None

    def test_with_timeout(self):
        ctx = CallContext.background().with_timeout(60)
        assert not ctx.expired()
        assert 0 < ctx.remaining() <= 60

    def test_with_timeout_keeps_earlier_deadline(self):
        ctx = CallContext.background().with_timeout(1).with_timeout(600)
        assert ctx.remaining() <= 1

    def test_expired(self):
        ctx = CallContext.background().with_deadline(time.monotonic() - 1)
        assert ctx.expired()
        assert ctx.remaining() == 0.0

    def test_immutable_derivation(self):
        base = CallContext.background()
        derived = base.with_trace(Context({"k": "v"}))
        assert base.trace == Context()
        assert derived.trace["k"] == "v"
