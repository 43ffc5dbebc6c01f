"""``simple_dns_exporter.context`` contains the ProbeContext class.

A ProbeContext carries the deadline and the cancellation signal of a single probe from the
HTTP handler down into the resolver client. It is created per request and never reused.
"""

from __future__ import annotations

import logging
import threading
import time

from simple_dns_exporter.exceptions import ContextError, DeadlineExceeded, ProbeCanceled

logger = logging.getLogger(f"simple_dns_exporter.{__name__}")


class ProbeContext:
    """Deadline and cancellation signal for one probe.

    The exchange itself is blocking, so the context is only looked at before the query is sent
    and after the exchange returns. A cancel() arriving during the exchange does not stop it, it
    only makes an error raised by the exchange count as a timeout. The HTTP handler cancels
    the context once the probe returned.

    Attributes:
    -----------
        deadline: The point in time (``time.monotonic()`` clock) when the probe must be done,
                  or ``None`` for no deadline.

    """

    def __init__(self, deadline: float | None = None) -> None:
        """Save the deadline and initialise the cancellation event."""
        self.deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def with_timeout(cls, timeout: float) -> ProbeContext:
        """Return a ProbeContext which expires ``timeout`` seconds from now."""
        return cls(deadline=time.monotonic() + timeout)

    def cancel(self) -> None:
        """Cancel the context. Safe to call more than once and from other threads."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        """Return True if cancel() has been called."""
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Return the number of seconds left before the deadline, never negative. None means no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def error(self) -> ContextError | None:
        """Return the reason this context is done, or None if it is still alive.

        Cancellation takes precedence over an expired deadline.
        """
        if self.cancelled:
            return ProbeCanceled()
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return DeadlineExceeded()
        return None

    def raise_if_done(self) -> None:
        """Raise DeadlineExceeded or ProbeCanceled if the context is done."""
        err = self.error()
        if err is not None:
            logger.debug(f"Context is done: {err}")
            raise err

    def __enter__(self) -> ProbeContext:
        """Use the context in a with statement, it is cancelled on exit."""
        return self

    def __exit__(self, *args: object) -> None:
        """Cancel the context when the with block ends."""
        self.cancel()
