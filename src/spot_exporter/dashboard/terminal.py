"""Terminal output using Rich: tally tables, a live watch view, and JSONL."""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Optional

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from spot_exporter import __version__
from spot_exporter.collector.spot_collector import SpotRequestCollector
from spot_exporter.metrics import StatusCategory, TallyVector

log = logging.getLogger(__name__)

MAX_CONSECUTIVE_ERRORS = 5

# Statuses that mean the request is not going to get capacity as-is
_PROBLEM_STATUSES = {
    StatusCategory.BAD_PARAMETERS,
    StatusCategory.CAPACITY_NOT_AVAILABLE,
    StatusCategory.CONSTRAINT_NOT_FULFILLABLE,
    StatusCategory.PRICE_TOO_LOW,
    StatusCategory.SYSTEM_ERROR,
    StatusCategory.INSTANCE_TERMINATED_BY_PRICE,
    StatusCategory.INSTANCE_TERMINATED_NO_CAPACITY,
    StatusCategory.INSTANCE_STOPPED_NO_CAPACITY,
    StatusCategory.INSTANCE_STOPPED_BY_PRICE,
}


def _color_for(category: StatusCategory, count: int) -> str:
    if count == 0:
        return "dim"
    if category is StatusCategory.FULFILLED:
        return "green"
    if category in _PROBLEM_STATUSES:
        return "red"
    return "yellow"


def build_tally_table(vector: TallyVector, show_zero: bool = False) -> Table:
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Status", style="dim")
    table.add_column("Requests", justify="right")

    for category in StatusCategory:
        count = vector.count(category)
        if count == 0 and not show_zero:
            continue
        color = _color_for(category, count)
        table.add_row(category.value, f"[{color}]{count}[/{color}]")

    if vector.unrecognized:
        table.add_row("[italic]unrecognized[/italic]", f"[magenta]{vector.unrecognized}[/magenta]")

    table.add_section()
    table.add_row("[bold]total[/bold]", f"[bold]{vector.total}[/bold]")
    return table


def build_display(vector: TallyVector, source_name: str, show_zero: bool = False) -> Panel:
    title = f"spot-exporter v{__version__}  |  {source_name}  |  {vector.timestamp.strftime('%Y-%m-%d %H:%M:%S')}"
    return Panel(build_tally_table(vector, show_zero=show_zero), title=title, border_style="blue")


def jsonl_record(vector: TallyVector, source_name: str) -> str:
    record = vector.summary()
    record["source"] = source_name
    return json.dumps(record)


def run_watch(
    collector: SpotRequestCollector,
    refresh_interval: float = 30.0,
    show_zero: bool = False,
):
    console = Console()
    source_name = collector.source.name()
    log.info("Starting watch: source=%s, refresh=%.1fs", source_name, refresh_interval)

    consecutive_errors = 0

    with Live(console=console, refresh_per_second=1) as live:
        try:
            while True:
                result = collector.scrape()
                if not result.ok:
                    consecutive_errors += 1
                    log.warning("Fetch failed (%d/%d): %s",
                                consecutive_errors, MAX_CONSECUTIVE_ERRORS, result.error)
                    if consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                        log.error("Giving up after %d consecutive failures", consecutive_errors)
                        break
                    error_text = Text(
                        f"  Fetch error ({consecutive_errors}/{MAX_CONSECUTIVE_ERRORS}): {result.error}",
                        style="bold red",
                    )
                    live.update(Panel(error_text, border_style="red"))
                else:
                    consecutive_errors = 0
                    live.update(build_display(result.tally, source_name, show_zero=show_zero))
                time.sleep(refresh_interval)
        except KeyboardInterrupt:
            pass

    console.print("\n[dim]Watch stopped.[/dim]")


def run_jsonl(
    collector: SpotRequestCollector,
    refresh_interval: float = 30.0,
    max_iterations: Optional[int] = None,
) -> int:
    """Prints one JSON object per successful fetch per line.

    Returns the number of consecutive failures at exit (0 on a clean stop).
    """
    source_name = collector.source.name()
    log.info("Starting JSONL output: source=%s, refresh=%.1fs", source_name, refresh_interval)

    consecutive_errors = 0
    iterations = 0

    try:
        while max_iterations is None or iterations < max_iterations:
            iterations += 1
            result = collector.scrape()
            if not result.ok:
                consecutive_errors += 1
                log.warning("Fetch failed (%d/%d): %s",
                            consecutive_errors, MAX_CONSECUTIVE_ERRORS, result.error)
                if consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                    log.error("Giving up after %d consecutive failures", consecutive_errors)
                    break
            else:
                consecutive_errors = 0
                sys.stdout.write(jsonl_record(result.tally, source_name) + "\n")
                sys.stdout.flush()

            if max_iterations is None or iterations < max_iterations:
                time.sleep(refresh_interval)
    except KeyboardInterrupt:
        pass

    return consecutive_errors
