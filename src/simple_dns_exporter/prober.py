"""``simple_dns_exporter.prober`` does one DNS probe and turns the result into a MetricSet.

The probe() function never raises for DNS or network failures, every failure ends up as
an outcome in the returned MetricSet.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import dns.exception
import dns.flags
import dns.message
import dns.name
import dns.rdataclass
import dns.rdatatype

from simple_dns_exporter import resolver
from simple_dns_exporter.exceptions import ContextError
from simple_dns_exporter.metrics import (
    ErrorKind,
    MetricSet,
    build_metric_set,
    simple_dns_exporter_probe_outcomes_total,
)

if TYPE_CHECKING:  # pragma: no cover
    from dns.message import Message, QueryMessage

    from simple_dns_exporter.context import ProbeContext

logger = logging.getLogger(f"simple_dns_exporter.{__name__}")


def build_query(target: str) -> QueryMessage:
    """Return an A/IN query for target as a fully qualified name with the RD flag set.

    dnspython picks a random 16 bit id for the message.
    """
    qname = dns.name.from_text(target)
    q = dns.message.make_query(qname=qname, rdtype=dns.rdatatype.A, rdclass=dns.rdataclass.IN)
    q.flags |= dns.flags.RD
    return q


def is_context_error(error: BaseException, ctx: ProbeContext | None = None) -> bool:
    """Return True if the error comes from a deadline or cancellation of the probe context."""
    if isinstance(error, ContextError):
        return True
    # a blocking exchange can not be interrupted, so check if the context ran out while we waited
    return ctx is not None and ctx.error() is not None


def reports_timeout(error: BaseException) -> bool:
    """Return True if the transport reports the error as a timeout."""
    # socket.timeout is an alias of TimeoutError
    return isinstance(error, (dns.exception.Timeout, TimeoutError))


def classify_error(error: BaseException | None, ctx: ProbeContext | None = None) -> ErrorKind:
    """Classify the error raised by an exchange, or None for no error.

    The context check and the transport check are independent, the first one matching decides.
    """
    if error is None:
        return ErrorKind.NONE
    if is_context_error(error, ctx):
        return ErrorKind.TIMEOUT
    if reports_timeout(error):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNKNOWN


def count_answers(response: Message) -> int:
    """Return the number of RRs in the answer section."""
    return sum(len(rrset) for rrset in response.answer)


@dataclass(frozen=True)
class ProbeResult:
    """The result of one exchange.

    An empty message stands in for the response when the exchange failed, so there is
    always an rcode and an answer section to look at.
    """

    response: Message
    error_kind: ErrorKind
    duration: float


def run_exchange(target: str, server: str, ctx: ProbeContext) -> ProbeResult:
    """Do the exchange, time it and classify any error. Never raises."""
    response: Message | None = None
    error: Exception | None = None
    # mark the start time and do the request
    start = time.monotonic()
    try:
        response = resolver.exchange(query=build_query(target), server=server, ctx=ctx)
    except Exception as e:  # noqa: BLE001
        error = e
    # clock it
    duration = time.monotonic() - start

    error_kind = classify_error(error, ctx)
    if error is not None:
        logger.info(f"query err for {target!r} on {server!r}: {error!r} classified as {error_kind.value}")
        if error_kind is ErrorKind.UNKNOWN:
            logger.debug("Exception details follow", exc_info=error)

    return ProbeResult(
        response=response if response is not None else dns.message.Message(),
        error_kind=error_kind,
        duration=duration,
    )


def probe(target: str, server: str, ctx: ProbeContext) -> MetricSet:
    """Query server for the A record of target once and return the resulting MetricSet.

    Args:
    -----
        target: The name to query, it is made fully qualified.
        server: The server to query as ``host:port``.
        ctx: The ProbeContext bounding the exchange.

    """
    result = run_exchange(target=target, server=server, ctx=ctx)
    metric_set = build_metric_set(
        error_kind=result.error_kind,
        rcode=result.response.rcode(),
        answer_count=count_answers(result.response),
        duration=result.duration,
        target=target,
        server=server,
    )
    logger.debug(f"Probe of {target!r} on {server!r} finished with outcome {metric_set.outcome.label}")
    simple_dns_exporter_probe_outcomes_total.labels(outcome=metric_set.outcome.label).inc()
    return metric_set
