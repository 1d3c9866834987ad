"""
Mock spot request inventory generator.

Produces fake but plausible spot fleets so we can develop and test without
AWS credentials. Most requests are fulfilled; the rest are spread over the
usual pending / capacity / price states, with the odd status code this
exporter doesn't know about yet.
"""

import math
import random
from typing import List

from spot_exporter.metrics import SpotRequestRecord, StatusCategory

# Relative weights, loosely based on a busy mixed-instance fleet
STATUS_WEIGHTS = {
    StatusCategory.FULFILLED: 60,
    StatusCategory.PENDING_EVALUATION: 6,
    StatusCategory.PENDING_FULFILLMENT: 6,
    StatusCategory.CAPACITY_NOT_AVAILABLE: 5,
    StatusCategory.PRICE_TOO_LOW: 4,
    StatusCategory.INSTANCE_TERMINATED_BY_PRICE: 3,
    StatusCategory.INSTANCE_TERMINATED_NO_CAPACITY: 3,
    StatusCategory.INSTANCE_TERMINATED_BY_USER: 3,
    StatusCategory.CANCELED_BEFORE_FULFILLMENT: 3,
    StatusCategory.MARKED_FOR_TERMINATION: 2,
    StatusCategory.REQUEST_CANCELED_AND_INSTANCE_RUNNING: 2,
    StatusCategory.SCHEDULE_EXPIRED: 1,
    StatusCategory.SYSTEM_ERROR: 1,
    StatusCategory.BAD_PARAMETERS: 1,
}

# A status newer than our enum; shows up in the total only.
UNKNOWN_STATUS = "instance-hibernated-by-price"
UNKNOWN_RATE = 0.02

_STATE_FOR_STATUS = {
    StatusCategory.FULFILLED: "active",
    StatusCategory.PENDING_EVALUATION: "open",
    StatusCategory.PENDING_FULFILLMENT: "open",
    StatusCategory.CAPACITY_NOT_AVAILABLE: "open",
    StatusCategory.PRICE_TOO_LOW: "open",
    StatusCategory.BAD_PARAMETERS: "failed",
    StatusCategory.SYSTEM_ERROR: "failed",
    StatusCategory.CANCELED_BEFORE_FULFILLMENT: "cancelled",
    StatusCategory.REQUEST_CANCELED_AND_INSTANCE_RUNNING: "cancelled",
}


class MockSpotFleet:

    def __init__(self, seed: int = 42, base_size: int = 40):
        self._rng = random.Random(seed)
        self._tick = 0
        self._next_id = 0
        self.base_size = base_size

    def snapshot(self) -> List[SpotRequestRecord]:
        """Generate one inventory listing, advancing the simulation clock."""
        self._tick += 1
        t = self._tick

        # Fleet size drifts sinusoidally with occasional scale-out bursts
        size = self.base_size + 15 * math.sin(t * 0.05)
        if self._rng.random() > 0.9:
            size += self._rng.randint(5, 20)
        size = max(0, int(size))

        statuses = list(STATUS_WEIGHTS)
        weights = list(STATUS_WEIGHTS.values())

        records = []
        for _ in range(size):
            if self._rng.random() < UNKNOWN_RATE:
                status = UNKNOWN_STATUS
                state = "active"
            else:
                category = self._rng.choices(statuses, weights=weights)[0]
                status = category.value
                state = _STATE_FOR_STATUS.get(category, "closed")
            records.append(SpotRequestRecord(
                request_id=self._new_id(),
                status=status,
                state=state,
            ))
        return records

    def _new_id(self) -> str:
        self._next_id += 1
        return f"sir-{self._next_id:08x}"
