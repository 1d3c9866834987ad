"""
Inventory source that reads from the mock fleet generator.
Used for local development on machines without AWS credentials.
"""

import threading
from typing import List

from spot_exporter.collector.base import InventorySource
from spot_exporter.metrics import SpotRequestRecord
from spot_exporter.mock.generator import MockSpotFleet


class MockSpotRequestSource(InventorySource):
    """Wraps the mock generator as a standard inventory source."""

    def __init__(self, seed: int = 42):
        self._fleet = MockSpotFleet(seed=seed)
        # The generator advances shared RNG state; scrapes may arrive concurrently.
        self._lock = threading.Lock()

    def fetch_spot_requests(self) -> List[SpotRequestRecord]:
        with self._lock:
            return self._fleet.snapshot()

    def name(self) -> str:
        return "Mock EC2 spot fleet"
