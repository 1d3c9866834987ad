"""
spot-exporter entry point.

Usage:
    spot-exporter                              Serve /metrics on :9671
    spot-exporter --mock                       Serve synthetic fleet data
    spot-exporter snapshot --region eu-west-1  One-shot tally table
    spot-exporter watch --refresh 30           Re-fetch and redraw periodically
    spot-exporter scrape --url http://host:9671  Read a running exporter
"""

from __future__ import annotations

import logging

import click
import httpx
from botocore.exceptions import NoRegionError

from spot_exporter import __version__
from spot_exporter.collector.ec2_source import EC2SpotRequestSource
from spot_exporter.collector.mock_source import MockSpotRequestSource
from spot_exporter.collector.spot_collector import SpotRequestCollector
from spot_exporter.config import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT_SECONDS,
    METRICS_PATH,
    ExporterConfig,
    FetchErrorPolicy,
    LabelMode,
)
from spot_exporter.schema import MetricSchema

log = logging.getLogger("spot_exporter")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="spot-exporter")
@click.option("--host", default=DEFAULT_HOST, envvar="SPOT_EXPORTER_HOST", show_default=True,
              help="Address to bind the HTTP server to")
@click.option("--port", default=DEFAULT_PORT, envvar="SPOT_EXPORTER_PORT", show_default=True,
              help="Port to serve metrics on")
@click.option("--region", default="", envvar="AWS_REGION",
              help="AWS region to query; also the value of the region label")
@click.option("--no-region-label", is_flag=True, default=False,
              help="Don't declare a region label on the exported gauges")
@click.option("--on-fetch-error", type=click.Choice([p.value for p in FetchErrorPolicy]),
              default=FetchErrorPolicy.FAIL_SCRAPE.value, envvar="SPOT_EXPORTER_ON_FETCH_ERROR",
              show_default=True,
              help="fail-scrape: answer that scrape with a 500; exit: stop the process")
@click.option("--timeout", default=DEFAULT_TIMEOUT_SECONDS, envvar="SPOT_EXPORTER_TIMEOUT",
              show_default=True, help="EC2 API connect/read timeout in seconds")
@click.option("--mock", is_flag=True, default=False, help="Use a simulated spot fleet")
@click.option("--seed", default=42, help="Random seed for --mock")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, host: str, port: int, region: str, no_region_label: bool, on_fetch_error: str,
        timeout: float, mock: bool, seed: int, verbose: bool):
    """EC2 spot instance request exporter for Prometheus."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    # botocore is chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["config"] = ExporterConfig(
        host=host,
        port=port,
        region=region,
        label_mode=LabelMode.WITHOUT_REGION_LABEL if no_region_label else LabelMode.WITH_REGION_LABEL,
        on_fetch_error=FetchErrorPolicy(on_fetch_error),
        timeout_seconds=timeout,
    )
    ctx.obj["mock"] = mock
    ctx.obj["seed"] = seed

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


def build_collector(config: ExporterConfig, mock: bool = False, seed: int = 42) -> SpotRequestCollector:
    if mock:
        source = MockSpotRequestSource(seed=seed)
    else:
        source = EC2SpotRequestSource(region=config.region, timeout_seconds=config.timeout_seconds)
    schema = MetricSchema.build(with_region_label=config.with_region_label)
    return SpotRequestCollector(source, schema=schema, region=config.region)


def _collector_from(ctx) -> SpotRequestCollector:
    try:
        return build_collector(ctx.obj["config"], mock=ctx.obj["mock"], seed=ctx.obj["seed"])
    except NoRegionError:
        raise click.UsageError("No AWS region configured; pass --region or set AWS_REGION")


@cli.command()
@click.pass_context
def serve(ctx):
    """Serve the spot request gauges over HTTP."""
    from spot_exporter.server import serve as run_server

    config = ctx.obj["config"]
    collector = _collector_from(ctx)
    try:
        exit_code = run_server(collector, config)
    finally:
        collector.source.close()
    if exit_code:
        raise SystemExit(exit_code)


@cli.command()
@click.option("--output", type=click.Choice(["table", "jsonl"]), default="table",
              help="table (Rich) or jsonl (one JSON line)")
@click.option("--all", "show_all", is_flag=True, default=False, help="Show statuses with zero requests")
@click.pass_context
def snapshot(ctx, output: str, show_all: bool):
    """Fetch the inventory once and print the tallies."""
    from rich.console import Console
    from spot_exporter.dashboard.terminal import build_display, jsonl_record

    collector = _collector_from(ctx)
    try:
        result = collector.scrape()
    finally:
        collector.source.close()

    if not result.ok:
        click.echo(f"Fetch failed: {result.error}", err=True)
        raise SystemExit(1)

    if output == "jsonl":
        click.echo(jsonl_record(result.tally, collector.source.name()))
    else:
        Console().print(build_display(result.tally, collector.source.name(), show_zero=show_all))


@cli.command()
@click.option("--refresh", default=30.0, show_default=True, help="Seconds between fetches")
@click.option("--output", type=click.Choice(["tui", "jsonl"]), default="tui",
              help="Output mode: tui (Rich live table) or jsonl (one JSON line per fetch)")
@click.option("--all", "show_all", is_flag=True, default=False, help="Show statuses with zero requests")
@click.pass_context
def watch(ctx, refresh: float, output: str, show_all: bool):
    """Fetch the inventory periodically and show the tallies."""
    from spot_exporter.dashboard.terminal import run_jsonl, run_watch

    collector = _collector_from(ctx)
    try:
        if output == "jsonl":
            run_jsonl(collector, refresh_interval=refresh)
        else:
            run_watch(collector, refresh_interval=refresh, show_zero=show_all)
    finally:
        collector.source.close()


@cli.command()
@click.option("--url", required=True, help="Exporter URL (e.g. http://localhost:9671)")
@click.option("--all", "show_all", is_flag=True, default=False, help="Show statuses with zero requests")
@click.pass_context
def scrape(ctx, url: str, show_all: bool):
    """Read a running exporter's /metrics and print its spot gauges."""
    from rich.console import Console
    from spot_exporter.collector.prometheus_parser import parse_prometheus_text, read_tally
    from spot_exporter.dashboard.terminal import build_display

    metrics_url = url.rstrip("/")
    if not metrics_url.endswith(METRICS_PATH):
        metrics_url += METRICS_PATH

    try:
        response = httpx.get(metrics_url, timeout=ctx.obj["config"].timeout_seconds)
        response.raise_for_status()
    except httpx.HTTPError as e:
        click.echo(f"Scrape of {metrics_url} failed: {e}", err=True)
        raise SystemExit(1)

    vector = read_tally(parse_prometheus_text(response.text))
    if vector is None:
        click.echo(f"No spot request gauges found at {metrics_url}", err=True)
        raise SystemExit(1)

    Console().print(build_display(vector, metrics_url, show_zero=show_all))


if __name__ == "__main__":
    cli()
