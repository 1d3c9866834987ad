"""
Helpers for reading Prometheus text exposition output, e.g. what a running
exporter serves at /metrics. Parsing itself is prometheus_client's; this
module just indexes the result and pulls out the spot request gauges.
"""

from __future__ import annotations

from typing import Dict, Optional

from prometheus_client.metrics_core import Metric
from prometheus_client.parser import text_string_to_metric_families

from spot_exporter.metrics import StatusCategory, TallyVector
from spot_exporter.schema import NAMESPACE, build_fq_name, metric_name_for


def parse_prometheus_text(text: str) -> Dict[str, Metric]:
    """Returns a dict of metric families keyed by family name."""
    return {family.name: family for family in text_string_to_metric_families(text)}


def get_gauge(
    families: Dict[str, Metric],
    name: str,
    labels: Optional[Dict[str, str]] = None,
) -> Optional[float]:
    """Value of the first sample of `name` whose labels include `labels`."""
    family = families.get(name)
    if not family:
        return None
    wanted = labels or {}
    for sample in family.samples:
        if all(sample.labels.get(k) == v for k, v in wanted.items()):
            return sample.value
    return None


def read_tally(
    families: Dict[str, Metric],
    region: Optional[str] = None,
    namespace: str = NAMESPACE,
) -> Optional[TallyVector]:
    """Rebuild a TallyVector from scraped spot gauges.

    Returns None when the total gauge is missing, which is what a failed or
    foreign scrape looks like. Categories missing from the output count as 0.
    """
    labels = {"region": region} if region is not None else None

    total = get_gauge(families, build_fq_name(namespace, "instance_requests"), labels)
    if total is None:
        return None

    vector = TallyVector(total=int(total))
    for category in StatusCategory:
        name = build_fq_name(namespace, metric_name_for(category))
        vector.counts[category] = int(get_gauge(families, name, labels) or 0)
    return vector
