"""The ``simple_dns_exporter.metrics`` module contains the metric definitions and the MetricSet builder.

All metrics exposed by ``simple_dns_exporter`` are prefixed with ``simple_dns_exporter_`` (apart from
the built-in Python process metrics).

There are two kinds of metrics here:

    - The per-probe metrics served under ``/probe``. They are described by the immutable
      ``DESCRIPTORS`` table and their values are computed by ``build_metric_set()`` for every probe.
    - The persistent exporter metrics served under ``/metrics``. These are regular
      ``prometheus_client`` metrics living in the default registry.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import dns.rcode
from prometheus_client.core import Counter, Info

from simple_dns_exporter.version import __version__

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterator

logger = logging.getLogger(f"simple_dns_exporter.{__name__}")

########################################################
# per-probe metrics (served under /probe)

# the labels used on every per-probe metric
PROBE_LABELS = ("instance", "server")


@dataclass(frozen=True)
class MetricDescriptor:
    """Name, help text and label names of one per-probe metric family."""

    name: str
    documentation: str
    labelnames: tuple[str, ...]


OUTCOME = MetricDescriptor(
    name="simple_dns_exporter_outcome",
    documentation="Query outcome",
    labelnames=(*PROBE_LABELS, "outcome"),
)
"""``simple_dns_exporter_outcome`` is a Gauge set for every outcome of the probe.

Exactly one of the six ``outcome`` label values has the value 1, the others are 0. All six are
always present so a scrape never leaves an outcome series unreported:

    - ``NOERROR``
    - ``NXDOMAIN``
    - ``SERVFAIL``
    - ``other_rcode``
    - ``timeout``
    - ``unknown_error``
"""

DURATION = MetricDescriptor(
    name="simple_dns_exporter_duration",
    documentation="Duration in seconds for query response. Omitted if timeout or no response.",
    labelnames=PROBE_LABELS,
)
"""``simple_dns_exporter_duration`` is a Gauge with the duration of the DNS exchange in seconds.

It is only present when the exchange succeeded, so averages are not skewed by failed queries.
"""

ANSWERS = MetricDescriptor(
    name="simple_dns_exporter_answers_total",
    documentation="Total number of answers. Omitted if timeout or no response.",
    labelnames=PROBE_LABELS,
)
"""``simple_dns_exporter_answers_total`` is a Gauge with the number of RRs in the answer section.

Like ``simple_dns_exporter_duration`` it is only present when the exchange succeeded.
"""

DESCRIPTORS = (OUTCOME, DURATION, ANSWERS)
"""The process-wide descriptor table handed to every EphemeralCollector."""


class ErrorKind(enum.Enum):
    """Classification of the error (if any) raised by a DNS exchange."""

    NONE = "none"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class Outcome(enum.Enum):
    """The possible outcomes of a probe. The value is used as the ``outcome`` label."""

    SUCCESS = "NOERROR"
    NAME_ERROR = "NXDOMAIN"
    SERVER_FAILURE = "SERVFAIL"
    OTHER_RCODE = "other_rcode"
    TIMEOUT = "timeout"
    UNKNOWN_ERROR = "unknown_error"

    @property
    def label(self) -> str:
        """Return the label value used for this outcome."""
        return str(self.value)


@dataclass(frozen=True)
class MetricObservation:
    """A single sample: the descriptor it belongs to, a value and the label values."""

    descriptor: MetricDescriptor
    value: float
    labels: tuple[str, ...]


@dataclass(frozen=True)
class MetricSet:
    """The complete, ordered set of observations produced by one probe."""

    outcome: Outcome
    observations: tuple[MetricObservation, ...]

    def __iter__(self) -> Iterator[MetricObservation]:
        """Iterate over the observations in order."""
        return iter(self.observations)

    def __len__(self) -> int:
        """Return the number of observations."""
        return len(self.observations)

    def for_descriptor(self, descriptor: MetricDescriptor) -> tuple[MetricObservation, ...]:
        """Return the observations belonging to the given descriptor, in order."""
        return tuple(o for o in self.observations if o.descriptor is descriptor)

    def outcomes(self) -> dict[str, float]:
        """Return a dict of outcome label to value. Mostly used in unit tests."""
        return {o.labels[-1]: o.value for o in self.for_descriptor(OUTCOME)}


def classify_outcome(error_kind: ErrorKind, rcode: int) -> Outcome:
    """Map an error classification and a response code to exactly one Outcome.

    The rcode is only consulted when there was no error.
    """
    if error_kind is ErrorKind.NONE:
        if rcode == dns.rcode.NOERROR:
            return Outcome.SUCCESS
        if rcode == dns.rcode.NXDOMAIN:
            return Outcome.NAME_ERROR
        if rcode == dns.rcode.SERVFAIL:
            return Outcome.SERVER_FAILURE
        return Outcome.OTHER_RCODE
    if error_kind is ErrorKind.TIMEOUT:
        return Outcome.TIMEOUT
    return Outcome.UNKNOWN_ERROR


def build_metric_set(  # noqa: PLR0913
    *,
    error_kind: ErrorKind,
    rcode: int,
    answer_count: int,
    duration: float,
    target: str,
    server: str,
) -> MetricSet:
    """Build the MetricSet for one probe.

    Args:
    -----
        error_kind: The ErrorKind of the exchange.
        rcode: The response code, ignored unless error_kind is ``ErrorKind.NONE``.
        answer_count: The number of answer RRs in the response.
        duration: The duration of the exchange in seconds.
        target: The queried name, used as the ``instance`` label.
        server: The server queried, used as the ``server`` label.

    Returns:
    --------
        A MetricSet with six one-hot outcome observations, followed by the duration and
        answer count observations if and only if there was no error.

    """
    outcome = classify_outcome(error_kind, rcode)
    labels = (target, server)
    observations = [
        MetricObservation(
            descriptor=OUTCOME,
            value=1.0 if candidate is outcome else 0.0,
            labels=(*labels, candidate.label),
        )
        for candidate in Outcome
    ]
    if error_kind is ErrorKind.NONE:
        # duration and answers are only sent on success so they can be averaged sensibly
        observations.append(MetricObservation(descriptor=DURATION, value=float(duration), labels=labels))
        observations.append(MetricObservation(descriptor=ANSWERS, value=float(answer_count), labels=labels))
    return MetricSet(outcome=outcome, observations=tuple(observations))


########################################################
# exporter internal/persistent metrics (served under /metrics)

simple_dns_exporter_build_version = Info(
    name="simple_dns_exporter_build_version",
    documentation="Info: The version of simple_dns_exporter",
)
"""``simple_dns_exporter_build_version`` is a persistent Info metric which contains the version."""
simple_dns_exporter_build_version.info({"version": __version__})

simple_dns_exporter_http_requests_total = Counter(
    name="simple_dns_exporter_http_requests_total",
    documentation="Counter: The total number of HTTP requests received by this exporter since start.",
    labelnames=["path"],
)
"""``simple_dns_exporter_http_requests_total`` is a Counter of the HTTP requests received, by ``path``."""

simple_dns_exporter_http_responses_total = Counter(
    name="simple_dns_exporter_http_responses_total",
    documentation="Counter: The total number of HTTP responses sent by this exporter since start.",
    labelnames=["path", "response_code"],
)
"""``simple_dns_exporter_http_responses_total`` is a Counter of the HTTP responses sent.

This metric has two labels:
    - ``path`` is set to the request path, usually ``/probe``.
    - ``response_code`` is set to the HTTP response code.
"""

simple_dns_exporter_dns_queries_total = Counter(
    name="simple_dns_exporter_dns_queries_total",
    documentation="Counter: The total number of DNS queries sent by this exporter since start.",
)
"""``simple_dns_exporter_dns_queries_total`` is a Counter increased every time a DNS exchange is attempted."""

simple_dns_exporter_probe_outcomes_total = Counter(
    name="simple_dns_exporter_probe_outcomes_total",
    documentation="Counter: The total number of probes by outcome since start.",
    labelnames=["outcome"],
)
"""``simple_dns_exporter_probe_outcomes_total`` is a Counter of finished probes by ``outcome`` label."""
