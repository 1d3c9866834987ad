"""Runtime configuration, assembled by the CLI from flags and env vars."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 9671
DEFAULT_TIMEOUT_SECONDS = 10.0
METRICS_PATH = "/metrics"


class FetchErrorPolicy(StrEnum):
    # Report the scrape as failed and keep serving.
    FAIL_SCRAPE = "fail-scrape"
    # Stop the process, so a supervisor restarts it.
    EXIT = "exit"


class LabelMode(StrEnum):
    WITH_REGION_LABEL = "with_region_label"
    WITHOUT_REGION_LABEL = "without_region_label"


@dataclass(frozen=True)
class ExporterConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    region: str = ""
    label_mode: LabelMode = LabelMode.WITH_REGION_LABEL
    on_fetch_error: FetchErrorPolicy = FetchErrorPolicy.FAIL_SCRAPE
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    metrics_path: str = METRICS_PATH

    @property
    def with_region_label(self) -> bool:
        return self.label_mode is LabelMode.WITH_REGION_LABEL
