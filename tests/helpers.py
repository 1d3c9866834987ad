"""Test doubles: inventory sources that don't talk to AWS."""

from typing import List

from spot_exporter.collector.base import InventorySource
from spot_exporter.errors import FetchError
from spot_exporter.metrics import SpotRequestRecord


def make_records(*statuses: str) -> List[SpotRequestRecord]:
    return [
        SpotRequestRecord(request_id=f"sir-{i:04d}", status=status)
        for i, status in enumerate(statuses)
    ]


class StaticSource(InventorySource):
    """Returns the same records on every fetch and counts the calls."""

    def __init__(self, records: List[SpotRequestRecord]):
        self.records = records
        self.calls = 0

    def fetch_spot_requests(self) -> List[SpotRequestRecord]:
        self.calls += 1
        return list(self.records)

    def name(self) -> str:
        return "static"


class FailingSource(InventorySource):
    """Fails the first `failures` fetches, then returns `records`."""

    def __init__(self, failures: int = 1_000_000, records=None):
        self.failures = failures
        self.records = records or []
        self.calls = 0

    def fetch_spot_requests(self) -> List[SpotRequestRecord]:
        self.calls += 1
        if self.calls <= self.failures:
            raise FetchError("RequestLimitExceeded: throttled")
        return list(self.records)

    def name(self) -> str:
        return "failing"
