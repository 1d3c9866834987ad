"""
HTTP surface for the exporter.

    GET /metrics  Prometheus exposition of the spot collector
    GET /         small landing page linking to /metrics

Each request is handled on its own thread, so concurrent scrapes each run
their own fetch. A failed fetch turns into a 500 for that scrape; with the
"exit" policy the server also shuts down and serve() returns 1.
"""

from __future__ import annotations

import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest

from spot_exporter.collector.spot_collector import SpotRequestCollector
from spot_exporter.config import METRICS_PATH, ExporterConfig, FetchErrorPolicy
from spot_exporter.errors import ScrapeError

log = logging.getLogger(__name__)

LANDING_PAGE = """<html>
<head><title>AWS EC2 Spot Exporter</title></head>
<body>
<h1>AWS EC2 Spot Exporter</h1>
<p><a href="{path}">Metrics</a></p>
</body>
</html>
"""


class ExporterHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(
        self,
        address,
        registry: CollectorRegistry,
        metrics_path: str = METRICS_PATH,
        on_fetch_error: FetchErrorPolicy = FetchErrorPolicy.FAIL_SCRAPE,
    ):
        super().__init__(address, _ExporterHandler)
        self.registry = registry
        self.metrics_path = metrics_path
        self.on_fetch_error = on_fetch_error
        self.fatal_error: Optional[str] = None

    def fail_fatally(self, reason: str):
        """Record the error and stop serve_forever() from another thread."""
        if self.fatal_error is None:
            self.fatal_error = reason
            threading.Thread(target=self.shutdown, daemon=True).start()


class _ExporterHandler(BaseHTTPRequestHandler):
    server: ExporterHTTPServer

    def do_GET(self):
        path = self.path.split("?", 1)[0]
        if path == self.server.metrics_path:
            self._serve_metrics()
        elif path == "/":
            self._send(200, LANDING_PAGE.format(path=self.server.metrics_path).encode(),
                       "text/html; charset=utf-8")
        else:
            self._send(404, b"Not Found\n", "text/plain; charset=utf-8")

    def _serve_metrics(self):
        try:
            body = generate_latest(self.server.registry)
        except ScrapeError as e:
            if self.server.on_fetch_error is FetchErrorPolicy.EXIT:
                log.critical("Inventory fetch failed, shutting down: %s", e)
                self.server.fail_fatally(str(e))
            self._send(500, f"scrape failed: {e}\n".encode(), "text/plain; charset=utf-8")
            return
        except Exception as e:
            log.exception("Unexpected error while collecting metrics")
            if self.server.on_fetch_error is FetchErrorPolicy.EXIT:
                self.server.fail_fatally(f"{type(e).__name__}: {e}")
            self._send(500, f"scrape failed: {type(e).__name__}\n".encode(), "text/plain; charset=utf-8")
            return
        self._send(200, body, CONTENT_TYPE_LATEST)

    def _send(self, status: int, body: bytes, content_type: str):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def build_registry(collector: SpotRequestCollector) -> CollectorRegistry:
    """A registry holding only the spot collector (no process/platform metrics)."""
    registry = CollectorRegistry()
    registry.register(collector)
    return registry


def create_server(collector: SpotRequestCollector, config: ExporterConfig) -> ExporterHTTPServer:
    return ExporterHTTPServer(
        (config.host, config.port),
        build_registry(collector),
        metrics_path=config.metrics_path,
        on_fetch_error=config.on_fetch_error,
    )


def serve(collector: SpotRequestCollector, config: ExporterConfig) -> int:
    """Run until interrupted or a fatal fetch error. Returns the exit code."""
    server = create_server(collector, config)
    host, port = server.server_address[:2]
    log.info("Starting EC2 Spot Exporter on %s:%d (source=%s)", host, port, collector.source.name())
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()

    if server.fatal_error is not None:
        return 1
    return 0
