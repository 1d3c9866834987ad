"""
Base inventory source interface.

An inventory source is anything that can list spot instance requests.
This keeps the collector and the HTTP layer decoupled from where the data
actually comes from (EC2, the mock generator, a test double).
"""

from abc import ABC, abstractmethod
from typing import List

from spot_exporter.metrics import SpotRequestRecord

# States passed to DescribeSpotInstanceRequests; together they cover every
# request EC2 still reports.
REQUEST_STATES = ("open", "active", "closed", "cancelled", "failed")


class InventorySource(ABC):
    """Interface for all spot request inventories."""

    @abstractmethod
    def fetch_spot_requests(self) -> List[SpotRequestRecord]:
        """Fetch the current spot requests. Raises FetchError on failure."""
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...

    def close(self):
        pass
