"""
Inventory source backed by the EC2 API. Calls DescribeSpotInstanceRequests
once per fetch, filtered to every request state, and maps each item to a
SpotRequestRecord. No pagination, caching or retries: one call, one answer.

boto3 clients are thread-safe, so one client is shared by concurrent scrapes.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from spot_exporter.collector.base import REQUEST_STATES, InventorySource
from spot_exporter.errors import FetchError
from spot_exporter.metrics import SpotRequestRecord

log = logging.getLogger(__name__)


class EC2SpotRequestSource(InventorySource):

    def __init__(
        self,
        region: Optional[str] = None,
        timeout_seconds: float = 10.0,
        client=None,
    ):
        self._region = region or None
        self._timeout = timeout_seconds
        if client is None:
            config = Config(
                connect_timeout=self._timeout,
                read_timeout=self._timeout,
                retries={"total_max_attempts": 1, "mode": "standard"},
            )
            client = boto3.client("ec2", region_name=self._region, config=config)
        self._client = client

    def fetch_spot_requests(self) -> List[SpotRequestRecord]:
        """Describe spot requests in every state and return them in API order."""
        try:
            response = self._client.describe_spot_instance_requests(
                Filters=[{"Name": "state", "Values": list(REQUEST_STATES)}]
            )
        except (BotoCoreError, ClientError) as e:
            raise FetchError(f"DescribeSpotInstanceRequests failed: {e}") from e

        items = response.get("SpotInstanceRequests")
        if not isinstance(items, list):
            raise FetchError("DescribeSpotInstanceRequests returned no SpotInstanceRequests list")

        records = [_to_record(item) for item in items]
        log.debug("Fetched %d spot instance requests from %s", len(records), self.name())
        return records

    def name(self) -> str:
        region = self._region or self._client.meta.region_name or "default region"
        return f"EC2 ({region})"

    def close(self):
        self._client.close()


def _to_record(item: dict) -> SpotRequestRecord:
    # Status.Code can be absent on malformed items; "" never matches a category.
    status = item.get("Status") or {}
    return SpotRequestRecord(
        request_id=item.get("SpotInstanceRequestId", ""),
        status=status.get("Code") or "",
        state=item.get("State", ""),
    )
