"""``simple_dns_exporter.collector`` contains the EphemeralCollector class used by the exporter during probes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from simple_dns_exporter.metrics import DESCRIPTORS, MetricDescriptor, MetricSet

if TYPE_CHECKING:  # pragma: no cover
    from collections.abc import Iterator

    from simple_dns_exporter.metrics import MetricObservation

logger = logging.getLogger(f"simple_dns_exporter.{__name__}")


def get_gauge_family(descriptor: MetricDescriptor) -> GaugeMetricFamily:
    """Return an empty GaugeMetricFamily for the descriptor."""
    return GaugeMetricFamily(
        name=descriptor.name,
        documentation=descriptor.documentation,
        labels=list(descriptor.labelnames),
    )


class EphemeralCollector(Collector):
    """Custom collector class which returns the metrics of one already finished probe.

    A new instance is created for every probe request and registered in a fresh
    CollectorRegistry, it is never reused.
    """

    def __init__(
        self,
        metric_set: MetricSet,
        descriptors: tuple[MetricDescriptor, ...] = DESCRIPTORS,
    ) -> None:
        """Save the MetricSet and the descriptor table for use later."""
        if not isinstance(metric_set, MetricSet):
            raise TypeError("metric_set must be a MetricSet")
        self.metric_set = metric_set
        self.descriptors = descriptors

    def describe(self) -> Iterator[GaugeMetricFamily]:
        """Describe the metrics that can be returned by this collector."""
        for descriptor in self.descriptors:
            yield get_gauge_family(descriptor)

    def observations(self) -> tuple[MetricObservation, ...]:
        """Return the wrapped observations in their stored order."""
        return self.metric_set.observations

    def collect(self) -> Iterator[GaugeMetricFamily]:
        """Yield the observations of the MetricSet grouped in one family per descriptor.

        Families without any observations are left out entirely.
        """
        families: dict[MetricDescriptor, GaugeMetricFamily] = {}
        for observation in self.observations():
            if observation.descriptor not in families:
                families[observation.descriptor] = get_gauge_family(observation.descriptor)
            families[observation.descriptor].add_metric(labels=list(observation.labels), value=observation.value)
        logger.debug(f"Collected {len(self.metric_set)} observations in {len(families)} metric families")
        yield from families.values()
