"""CLI tests via click's CliRunner, using the mock fleet so AWS is never called."""

import json

import httpx
from click.testing import CliRunner

from spot_exporter.collector.ec2_source import EC2SpotRequestSource
from spot_exporter.collector.mock_source import MockSpotRequestSource
from spot_exporter.config import ExporterConfig, FetchErrorPolicy, LabelMode
from spot_exporter.main import build_collector, cli


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "spot-exporter" in result.output


def test_snapshot_jsonl_with_mock():
    result = CliRunner().invoke(cli, ["--mock", "--seed", "3", "snapshot", "--output", "jsonl"])
    assert result.exit_code == 0, result.output
    record = json.loads(result.output.strip().splitlines()[-1])
    assert record["source"] == "Mock EC2 spot fleet"
    assert record["total"] > 0
    assert record["total"] >= record["fulfilled"]


def test_snapshot_table_with_mock():
    result = CliRunner().invoke(cli, ["--mock", "snapshot", "--all"])
    assert result.exit_code == 0, result.output
    assert "fulfilled" in result.output
    assert "total" in result.output


def test_build_collector_config():
    config = ExporterConfig(region="eu-central-1", label_mode=LabelMode.WITHOUT_REGION_LABEL)
    collector = build_collector(config, mock=True)
    assert isinstance(collector.source, MockSpotRequestSource)
    assert collector.schema.label_names == ()

    ec2 = build_collector(ExporterConfig(region="eu-central-1"))
    assert isinstance(ec2.source, EC2SpotRequestSource)
    assert ec2.schema.label_names == ("region",)
    assert ec2.source.name() == "EC2 (eu-central-1)"
    ec2.source.close()


def test_region_from_environment(monkeypatch):
    captured = {}

    def fake_serve(collector, config):
        captured["config"] = config
        captured["collector"] = collector
        return 0

    monkeypatch.setattr("spot_exporter.server.serve", fake_serve)
    result = CliRunner().invoke(cli, ["--mock"], env={
        "AWS_REGION": "ap-northeast-1",
        "SPOT_EXPORTER_PORT": "9999",
        "SPOT_EXPORTER_ON_FETCH_ERROR": "exit",
    })
    assert result.exit_code == 0, result.output

    config = captured["config"]
    assert config.region == "ap-northeast-1"
    assert config.port == 9999
    assert config.on_fetch_error is FetchErrorPolicy.EXIT
    assert config.label_mode is LabelMode.WITH_REGION_LABEL

    samples = captured["collector"].scrape().samples
    assert {s.label_values for s in samples} == {("ap-northeast-1",)}


def test_serve_exit_code_propagates(monkeypatch):
    monkeypatch.setattr("spot_exporter.server.serve", lambda collector, config: 1)
    result = CliRunner().invoke(cli, ["--mock", "serve"])
    assert result.exit_code == 1


def test_scrape_reads_running_exporter(monkeypatch):
    exposition = (
        "# HELP ec2_spot_instance_requests Spot instance requests count.\n"
        "# TYPE ec2_spot_instance_requests gauge\n"
        'ec2_spot_instance_requests{region="us-east-1"} 4.0\n'
        "# HELP ec2_spot_instance_fulfilled_requests x\n"
        "# TYPE ec2_spot_instance_fulfilled_requests gauge\n"
        'ec2_spot_instance_fulfilled_requests{region="us-east-1"} 4.0\n'
    )
    seen = {}

    def fake_get(url, timeout):
        seen["url"] = url
        return httpx.Response(200, text=exposition, request=httpx.Request("GET", url))

    monkeypatch.setattr("spot_exporter.main.httpx.get", fake_get)
    result = CliRunner().invoke(cli, ["scrape", "--url", "http://exporter:9671/"])
    assert result.exit_code == 0, result.output
    assert seen["url"] == "http://exporter:9671/metrics"
    assert "fulfilled" in result.output


def test_scrape_reports_failed_exporter(monkeypatch):
    def fake_get(url, timeout):
        return httpx.Response(500, text="scrape failed", request=httpx.Request("GET", url))

    monkeypatch.setattr("spot_exporter.main.httpx.get", fake_get)
    result = CliRunner().invoke(cli, ["scrape", "--url", "http://exporter:9671"])
    assert result.exit_code == 1
