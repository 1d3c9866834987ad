"""Tests for the spot request collector: scrape results, prometheus protocol, isolation."""

import threading
from typing import List

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from spot_exporter.collector.base import InventorySource
from spot_exporter.collector.spot_collector import SpotRequestCollector
from spot_exporter.errors import ScrapeError
from spot_exporter.metrics import SpotRequestRecord, StatusCategory
from spot_exporter.schema import MetricSchema

from helpers import FailingSource, StaticSource, make_records


def _values(result):
    return {s.descriptor.name: s.value for s in result.samples}


def test_scrape_emits_one_sample_per_descriptor(static_source):
    collector = SpotRequestCollector(static_source, region="us-east-1")
    result = collector.scrape()

    assert result.ok
    assert len(result.samples) == len(collector.schema)
    assert [s.descriptor for s in result.samples] == list(collector.schema.describe())

    values = _values(result)
    assert values["ec2_spot_instance_requests"] == 3
    assert values["ec2_spot_instance_fulfilled_requests"] == 2
    assert values["ec2_spot_instance_price_too_low_requests"] == 1
    assert values["ec2_spot_instance_system_error_requests"] == 0


def test_every_sample_carries_the_region(static_source):
    collector = SpotRequestCollector(static_source, region="eu-west-1")
    result = collector.scrape()
    assert {s.label_values for s in result.samples} == {("eu-west-1",)}


def test_empty_region_is_an_empty_label_value(static_source):
    collector = SpotRequestCollector(static_source)
    result = collector.scrape()
    assert {s.label_values for s in result.samples} == {("",)}


def test_without_region_label_no_label_values(static_source):
    schema = MetricSchema.build(with_region_label=False)
    collector = SpotRequestCollector(static_source, schema=schema, region="eu-west-1")
    result = collector.scrape()
    assert {s.label_values for s in result.samples} == {()}


def test_empty_inventory_all_zero():
    collector = SpotRequestCollector(StaticSource([]))
    result = collector.scrape()
    assert result.ok
    assert all(s.value == 0 for s in result.samples)
    assert len(result.samples) == len(StatusCategory) + 1


def test_unrecognized_status_only_in_total():
    collector = SpotRequestCollector(StaticSource(make_records("quantum-flux")))
    values = _values(collector.scrape())
    assert values["ec2_spot_instance_requests"] == 1
    assert sum(values.values()) == 1


def test_fetches_on_every_scrape(static_source):
    collector = SpotRequestCollector(static_source)
    collector.scrape()
    collector.scrape()
    assert static_source.calls == 2


def test_failed_fetch_returns_error_and_no_samples(failing_source):
    collector = SpotRequestCollector(failing_source)
    result = collector.scrape()
    assert not result.ok
    assert result.samples == ()
    assert result.tally is None
    assert "throttled" in result.error


def test_next_scrape_after_failure_succeeds():
    source = FailingSource(failures=1, records=make_records("fulfilled"))
    collector = SpotRequestCollector(source)

    assert not collector.scrape().ok
    second = collector.scrape()
    assert second.ok
    assert _values(second)["ec2_spot_instance_fulfilled_requests"] == 1


def test_collect_raises_scrape_error(failing_source):
    collector = SpotRequestCollector(failing_source)
    with pytest.raises(ScrapeError):
        collector.collect()


def test_describe_does_not_fetch(failing_source):
    collector = SpotRequestCollector(failing_source)
    families = collector.describe()
    assert len(families) == len(StatusCategory) + 1
    assert all(f.type == "gauge" for f in families)
    assert all(f.samples == [] for f in families)
    assert failing_source.calls == 0


def test_registry_registration_does_not_fetch(failing_source):
    registry = CollectorRegistry()
    registry.register(SpotRequestCollector(failing_source))
    assert failing_source.calls == 0


def test_generate_latest_output(static_source):
    registry = CollectorRegistry()
    registry.register(SpotRequestCollector(static_source, region="us-east-1"))
    text = generate_latest(registry).decode()

    assert "# TYPE ec2_spot_instance_requests gauge" in text
    assert 'ec2_spot_instance_requests{region="us-east-1"} 3.0' in text
    assert 'ec2_spot_instance_fulfilled_requests{region="us-east-1"} 2.0' in text
    assert 'ec2_spot_instance_price_too_low_requests{region="us-east-1"} 1.0' in text
    assert 'ec2_spot_instance_system_error_requests{region="us-east-1"} 0.0' in text


def test_generate_latest_without_labels(static_source):
    registry = CollectorRegistry()
    schema = MetricSchema.build(with_region_label=False)
    registry.register(SpotRequestCollector(static_source, schema=schema, region="us-east-1"))
    text = generate_latest(registry).decode()
    assert "ec2_spot_instance_requests 3.0" in text
    assert "region=" not in text


def test_generate_latest_fails_whole_scrape(failing_source):
    registry = CollectorRegistry()
    registry.register(SpotRequestCollector(failing_source))
    with pytest.raises(ScrapeError):
        generate_latest(registry)


class _BarrierSource(InventorySource):
    """Hands each caller a different result, holding them until both are in flight."""

    def __init__(self, results: List[List[SpotRequestRecord]]):
        self._results = list(results)
        self._lock = threading.Lock()
        self._barrier = threading.Barrier(len(results), timeout=5)

    def fetch_spot_requests(self) -> List[SpotRequestRecord]:
        with self._lock:
            records = self._results.pop(0)
        self._barrier.wait()
        return records

    def name(self) -> str:
        return "barrier"


def test_concurrent_scrapes_are_isolated():
    small = make_records("fulfilled", "fulfilled")
    large = make_records("price-too-low", "price-too-low", "price-too-low", "system-error", "mystery")
    collector = SpotRequestCollector(_BarrierSource([small, large]))

    results = []
    results_lock = threading.Lock()

    def run():
        result = collector.scrape()
        with results_lock:
            results.append(result)

    threads = [threading.Thread(target=run) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(results) == 2
    by_total = {r.tally.total: r.tally for r in results}
    assert set(by_total) == {2, 5}

    assert by_total[2].count(StatusCategory.FULFILLED) == 2
    assert by_total[2].count(StatusCategory.PRICE_TOO_LOW) == 0

    assert by_total[5].count(StatusCategory.FULFILLED) == 0
    assert by_total[5].count(StatusCategory.PRICE_TOO_LOW) == 3
    assert by_total[5].count(StatusCategory.SYSTEM_ERROR) == 1
    assert by_total[5].unrecognized == 1
