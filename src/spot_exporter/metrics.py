"""
Core data definitions for spot-exporter.

StatusCategory mirrors the status codes EC2 reports for a spot instance
request (``Status.Code`` in DescribeSpotInstanceRequests). Anything EC2 sends
that isn't in this list is counted in the total only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Dict, Iterable, Optional


class StatusCategory(StrEnum):
    AZ_GROUP_CONSTRAINT = "az-group-constraint"
    BAD_PARAMETERS = "bad-parameters"
    CANCELED_BEFORE_FULFILLMENT = "canceled-before-fulfillment"
    CAPACITY_NOT_AVAILABLE = "capacity-not-available"
    CONSTRAINT_NOT_FULFILLABLE = "constraint-not-fulfillable"
    FULFILLED = "fulfilled"
    INSTANCE_STOPPED_BY_PRICE = "instance-stopped-by-price"
    INSTANCE_STOPPED_BY_USER = "instance-stopped-by-user"
    INSTANCE_STOPPED_NO_CAPACITY = "instance-stopped-no-capacity"
    INSTANCE_TERMINATED_BY_PRICE = "instance-terminated-by-price"
    INSTANCE_TERMINATED_BY_SCHEDULE = "instance-terminated-by-schedule"
    INSTANCE_TERMINATED_BY_SERVICE = "instance-terminated-by-service"
    INSTANCE_TERMINATED_BY_USER = "instance-terminated-by-user"
    INSTANCE_TERMINATED_LAUNCH_GROUP_CONSTRAINT = "instance-terminated-launch-group-constraint"
    INSTANCE_TERMINATED_NO_CAPACITY = "instance-terminated-no-capacity"
    LAUNCH_GROUP_CONSTRAINT = "launch-group-constraint"
    MARKED_FOR_STOP = "marked-for-stop"
    MARKED_FOR_TERMINATION = "marked-for-termination"
    NOT_SCHEDULED_YET = "not-scheduled-yet"
    PENDING_EVALUATION = "pending-evaluation"
    PENDING_FULFILLMENT = "pending-fulfillment"
    PLACEMENT_GROUP_CONSTRAINT = "placement-group-constraint"
    PRICE_TOO_LOW = "price-too-low"
    REQUEST_CANCELED_AND_INSTANCE_RUNNING = "request-canceled-and-instance-running"
    SCHEDULE_EXPIRED = "schedule-expired"
    SYSTEM_ERROR = "system-error"


# Exact-match lookup, no case folding or trimming.
_STATUS_LOOKUP: Dict[str, StatusCategory] = {c.value: c for c in StatusCategory}


def classify(status: str) -> Optional[StatusCategory]:
    """Map a raw status code to its category, or None if we don't know it."""
    return _STATUS_LOOKUP.get(status)


@dataclass(frozen=True)
class SpotRequestRecord:
    """One spot instance request as returned by the inventory source."""

    request_id: str
    status: str
    state: str = ""


@dataclass
class TallyVector:
    """Per-category counts for a single scrape.

    ``total`` is the number of records seen, so it can be larger than the sum
    of ``counts`` when some statuses were unrecognized.
    """

    counts: Dict[StatusCategory, int] = field(
        default_factory=lambda: {c: 0 for c in StatusCategory}
    )
    total: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def categorized(self) -> int:
        return sum(self.counts.values())

    @property
    def unrecognized(self) -> int:
        return self.total - self.categorized

    def count(self, category: StatusCategory) -> int:
        return self.counts[category]

    def summary(self) -> dict:
        """Return a plain dict for display or JSON output."""
        record = {
            "timestamp": self.timestamp.isoformat(),
            "total": self.total,
            "unrecognized": self.unrecognized,
        }
        for category in StatusCategory:
            record[category.value] = self.counts[category]
        return record


def tally(records: Iterable[SpotRequestRecord]) -> TallyVector:
    """Count records by status category. Pure: a fresh vector every call."""
    vector = TallyVector()
    for record in records:
        vector.total += 1
        category = classify(record.status)
        if category is not None:
            vector.counts[category] += 1
    return vector
