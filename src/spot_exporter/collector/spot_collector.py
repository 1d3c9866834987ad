"""
Spot request collector. On every scrape it fetches the inventory once,
tallies requests by status and emits one gauge per schema descriptor.

Implements the prometheus_client custom collector protocol (describe/collect)
so it can be registered on a CollectorRegistry directly. describe() never
touches the inventory, so registration is side-effect free.

Emission is all-or-nothing: a failed fetch yields no samples at all, never
zeros or a partial set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from prometheus_client.core import GaugeMetricFamily

from spot_exporter.collector.base import InventorySource
from spot_exporter.errors import FetchError, ScrapeError
from spot_exporter.metrics import TallyVector, tally
from spot_exporter.schema import MetricDescriptor, MetricSchema

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Sample:
    descriptor: MetricDescriptor
    label_values: Tuple[str, ...]
    value: float


@dataclass(frozen=True)
class ScrapeResult:
    samples: Tuple[Sample, ...] = ()
    error: Optional[str] = None
    tally: Optional[TallyVector] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class SpotRequestCollector:

    def __init__(
        self,
        source: InventorySource,
        schema: Optional[MetricSchema] = None,
        region: str = "",
    ):
        self._source = source
        self._schema = schema or MetricSchema.build()
        # Bound once; every sample of every scrape carries the same value.
        self._label_values: Tuple[str, ...] = (region,) if self._schema.label_names else ()

    @property
    def schema(self) -> MetricSchema:
        return self._schema

    @property
    def source(self) -> InventorySource:
        return self._source

    def samples_for(self, vector: TallyVector) -> Tuple[Sample, ...]:
        """Turn a tally into one sample per descriptor, in schema order."""
        samples = []
        for descriptor in self._schema.describe():
            if descriptor.category is None:
                value = vector.total
            else:
                value = vector.count(descriptor.category)
            samples.append(Sample(descriptor, self._label_values, float(value)))
        return tuple(samples)

    def scrape(self) -> ScrapeResult:
        """Fetch, tally and build samples. Never raises for fetch failures."""
        try:
            records = self._source.fetch_spot_requests()
        except FetchError as e:
            log.warning("Inventory fetch from %s failed: %s", self._source.name(), e)
            return ScrapeResult(error=str(e))

        vector = tally(records)
        if vector.unrecognized:
            log.debug("%d spot requests had an unrecognized status", vector.unrecognized)
        return ScrapeResult(samples=self.samples_for(vector), tally=vector)

    def describe(self) -> List[GaugeMetricFamily]:
        return [self._family(d) for d in self._schema.describe()]

    def collect(self) -> List[GaugeMetricFamily]:
        result = self.scrape()
        if not result.ok:
            raise ScrapeError(result.error)

        families = []
        for sample in result.samples:
            family = self._family(sample.descriptor)
            family.add_metric(list(sample.label_values), sample.value)
            families.append(family)
        return families

    @staticmethod
    def _family(descriptor: MetricDescriptor) -> GaugeMetricFamily:
        return GaugeMetricFamily(
            descriptor.name,
            descriptor.help_text,
            labels=list(descriptor.label_names),
        )
