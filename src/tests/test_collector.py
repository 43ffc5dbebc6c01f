"""Unit tests for EphemeralCollector and other collector.py code."""

import dns.rcode
import pytest
from prometheus_client import CollectorRegistry, generate_latest

from simple_dns_exporter.collector import EphemeralCollector
from simple_dns_exporter.metrics import DESCRIPTORS, ErrorKind, build_metric_set

LABELS = {"instance": "example.com", "server": "192.0.2.53:53"}


def get_metric_set(error_kind, rcode=dns.rcode.NOERROR):
    """Return a MetricSet for example.com with 2 answers in 120 ms."""
    return build_metric_set(
        error_kind=error_kind,
        rcode=rcode,
        answer_count=2,
        duration=0.12,
        target=LABELS["instance"],
        server=LABELS["server"],
    )


def test_invalid_metric_set_type():
    """Test exception when passing something which is not a MetricSet."""
    with pytest.raises(TypeError):
        EphemeralCollector(42)


def test_describe_is_independent_of_metric_set():
    """describe() always returns the full descriptor table."""
    for error_kind in ErrorKind:
        c = EphemeralCollector(get_metric_set(error_kind))
        assert [family.name for family in c.describe()] == [d.name for d in DESCRIPTORS]
        assert all(family.type == "gauge" for family in c.describe())
        assert all(family.samples == [] for family in c.describe())


def test_collect_success():
    """All three families are collected on success, in order."""
    metric_set = get_metric_set(ErrorKind.NONE)
    c = EphemeralCollector(metric_set)
    families = list(c.collect())
    assert [f.name for f in families] == [d.name for d in DESCRIPTORS]
    samples = [s for f in families for s in f.samples]
    assert [s.value for s in samples] == [o.value for o in c.observations()]
    assert samples[0].labels == {**LABELS, "outcome": "NOERROR"}


def test_collect_error_leaves_out_duration_and_answers():
    """Only the outcome family is collected when the probe failed."""
    c = EphemeralCollector(get_metric_set(ErrorKind.TIMEOUT))
    families = list(c.collect())
    assert [f.name for f in families] == ["simple_dns_exporter_outcome"]
    assert len(families[0].samples) == 6


def test_collect_is_repeatable():
    """collect() does not consume or change the wrapped MetricSet."""
    metric_set = get_metric_set(ErrorKind.NONE)
    c = EphemeralCollector(metric_set)
    first = [s for f in c.collect() for s in f.samples]
    second = [s for f in c.collect() for s in f.samples]
    assert first == second
    assert c.observations() is metric_set.observations


def test_registry_output():
    """Register the collector in a fresh registry and check the values."""
    registry = CollectorRegistry()
    registry.register(EphemeralCollector(get_metric_set(ErrorKind.NONE)))
    assert registry.get_sample_value("simple_dns_exporter_outcome", {**LABELS, "outcome": "NOERROR"}) == 1.0
    assert registry.get_sample_value("simple_dns_exporter_outcome", {**LABELS, "outcome": "timeout"}) == 0.0
    assert registry.get_sample_value("simple_dns_exporter_duration", LABELS) == pytest.approx(0.12)
    assert registry.get_sample_value("simple_dns_exporter_answers_total", LABELS) == 2.0
    assert b"# TYPE simple_dns_exporter_answers_total gauge" in generate_latest(registry)


def test_registry_output_nxdomain():
    """NXDOMAIN sets name_error and nothing else."""
    registry = CollectorRegistry()
    registry.register(EphemeralCollector(get_metric_set(ErrorKind.NONE, rcode=dns.rcode.NXDOMAIN)))
    assert registry.get_sample_value("simple_dns_exporter_outcome", {**LABELS, "outcome": "NXDOMAIN"}) == 1.0
    assert registry.get_sample_value("simple_dns_exporter_outcome", {**LABELS, "outcome": "NOERROR"}) == 0.0


def test_registry_output_unknown_error():
    """An unknown error has no duration or answers in the output at all."""
    registry = CollectorRegistry()
    registry.register(EphemeralCollector(get_metric_set(ErrorKind.UNKNOWN)))
    assert registry.get_sample_value("simple_dns_exporter_outcome", {**LABELS, "outcome": "unknown_error"}) == 1.0
    assert registry.get_sample_value("simple_dns_exporter_duration", LABELS) is None
    assert registry.get_sample_value("simple_dns_exporter_answers_total", LABELS) is None
    assert b"simple_dns_exporter_duration" not in generate_latest(registry)
