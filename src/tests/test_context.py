"""Unit tests for ProbeContext."""

import time

import pytest

from simple_dns_exporter.context import ProbeContext
from simple_dns_exporter.exceptions import DeadlineExceeded, ProbeCanceled


def test_no_deadline():
    """A context without deadline is never done unless cancelled."""
    ctx = ProbeContext()
    assert ctx.remaining() is None
    assert ctx.error() is None
    ctx.raise_if_done()


def test_with_timeout_remaining():
    """Make sure remaining() counts down from the timeout."""
    ctx = ProbeContext.with_timeout(10)
    assert 9 < ctx.remaining() <= 10
    assert ctx.error() is None


def test_deadline_exceeded():
    """An expired context reports DeadlineExceeded and has no time left."""
    ctx = ProbeContext(deadline=time.monotonic() - 1)
    assert ctx.remaining() == 0.0
    assert isinstance(ctx.error(), DeadlineExceeded)
    with pytest.raises(DeadlineExceeded):
        ctx.raise_if_done()


def test_cancel():
    """A cancelled context reports ProbeCanceled, even when the deadline has also passed."""
    ctx = ProbeContext(deadline=time.monotonic() - 1)
    ctx.cancel()
    ctx.cancel()
    assert ctx.cancelled
    with pytest.raises(ProbeCanceled):
        ctx.raise_if_done()


def test_with_statement_cancels():
    """Leaving the with block cancels the context."""
    with ProbeContext.with_timeout(10) as ctx:
        assert not ctx.cancelled
    assert ctx.cancelled
