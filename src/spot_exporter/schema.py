"""
Metric schema: the fixed set of gauges the exporter publishes.

Built once at startup, then shared read-only by every scrape. One gauge for
the total request count plus one per StatusCategory, in enum order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from spot_exporter.errors import SchemaError
from spot_exporter.metrics import StatusCategory

NAMESPACE = "ec2_spot"
REGION_LABEL = "region"


@dataclass(frozen=True)
class MetricDescriptor:
    name: str
    help_text: str
    label_names: Tuple[str, ...] = ()
    category: Optional[StatusCategory] = None  # None for the total gauge


def build_fq_name(namespace: str, name: str) -> str:
    return f"{namespace}_{name}" if namespace else name


# Names already published under a different spelling; renaming them would
# orphan existing dashboards and alerts.
_PUBLISHED_NAMES = {
    StatusCategory.AZ_GROUP_CONSTRAINT: "instance_az_group_contraint_requests",
}


def metric_name_for(category: StatusCategory) -> str:
    """instance-stopped-by-price -> instance_stopped_by_price_requests,
    fulfilled -> instance_fulfilled_requests."""
    if category in _PUBLISHED_NAMES:
        return _PUBLISHED_NAMES[category]
    base = category.value.replace("-", "_")
    if not base.startswith("instance_"):
        base = f"instance_{base}"
    return f"{base}_requests"


class MetricSchema:
    """Owns the {total, category} -> MetricDescriptor mapping."""

    def __init__(
        self,
        total: MetricDescriptor,
        by_category: Dict[StatusCategory, MetricDescriptor],
    ):
        self._total = total
        self._by_category = dict(by_category)

        names = [d.name for d in self.describe()]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise SchemaError(f"duplicate metric names: {', '.join(duplicates)}")
        missing = [c.value for c in StatusCategory if c not in self._by_category]
        if missing:
            raise SchemaError(f"no descriptor for status: {', '.join(missing)}")
        mismatched = [c.value for c, d in self._by_category.items() if d.category is not c]
        if mismatched:
            raise SchemaError(f"descriptor category does not match its status: {', '.join(mismatched)}")
        # Samples take their label values from the total, so every gauge must share its labels.
        relabeled = [d.name for d in self.describe() if d.label_names != total.label_names]
        if relabeled:
            raise SchemaError(
                f"label names differ from {total.name} {total.label_names}: {', '.join(relabeled)}"
            )

    @classmethod
    def build(cls, namespace: str = NAMESPACE, with_region_label: bool = True) -> "MetricSchema":
        labels = (REGION_LABEL,) if with_region_label else ()
        total = MetricDescriptor(
            name=build_fq_name(namespace, "instance_requests"),
            help_text="Spot instance requests count.",
            label_names=labels,
        )
        by_category = {
            category: MetricDescriptor(
                name=build_fq_name(namespace, metric_name_for(category)),
                help_text=f"Spot instance requests with {category.value} status count",
                label_names=labels,
                category=category,
            )
            for category in StatusCategory
        }
        return cls(total, by_category)

    @property
    def total(self) -> MetricDescriptor:
        return self._total

    @property
    def label_names(self) -> Tuple[str, ...]:
        return self._total.label_names

    def for_category(self, category: StatusCategory) -> MetricDescriptor:
        return self._by_category[category]

    def describe(self) -> Iterator[MetricDescriptor]:
        """Yield every descriptor: the total first, then categories in enum order."""
        yield self._total
        for category in StatusCategory:
            if category in self._by_category:
                yield self._by_category[category]

    def names(self) -> List[str]:
        return [d.name for d in self.describe()]

    def __len__(self) -> int:
        return 1 + len(self._by_category)
