"""``simple_dns_exporter.exporter`` contains the SimpleDNSExporter class.

The config.py module contains configuration related stuff, metrics.py contains the metric
definitions and the MetricSet builder, prober.py does the DNS probe, collector.py has the
EphemeralCollector, and this exporter.py module handles the HTTP side of things.
"""

from __future__ import annotations

import ipaddress
import logging
import urllib.parse
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, MetricsHandler, exposition

from simple_dns_exporter.collector import EphemeralCollector
from simple_dns_exporter.config import Config
from simple_dns_exporter.context import ProbeContext
from simple_dns_exporter.metrics import (
    simple_dns_exporter_http_requests_total,
    simple_dns_exporter_http_responses_total,
)
from simple_dns_exporter.prober import probe
from simple_dns_exporter.version import __version__

if TYPE_CHECKING:  # pragma: no cover
    from prometheus_client.registry import RestrictedRegistry

logger = logging.getLogger(f"simple_dns_exporter.{__name__}")

DEFAULT_DNS_PORT = 53

INDEX = """<!DOCTYPE html>
<html lang="en">
<head><title>Simple DNS Exporter</title></head>
<body>
<h1>Simple DNS Exporter</h1>
<p>Visit <a href="/probe?target=example.com&server=8.8.8.8">/probe?target=example.com&server=8.8.8.8</a> to do a DNS query and see metrics.</p>
<p>Visit <a href="/health">/health</a> for the health check.</p>
<p>Visit <a href="/metrics">/metrics</a> to see metrics for the simple_dns_exporter itself.</p>
</body>
</html>"""  # noqa: E501


def add_default_port(server: str, port: int = DEFAULT_DNS_PORT) -> str:
    """Return server with the default DNS port added if it has no explicit port.

    Bare IPv6 addresses are put in brackets before the port is added.
    """
    if server.startswith("[") and server.endswith("]"):
        return f"{server}:{port}"
    if ":" not in server:
        return f"{server}:{port}"
    try:
        if ipaddress.ip_address(server).version == 6:  # noqa: PLR2004
            return f"[{server}]:{port}"
    except ValueError:
        # not an IP, so the colon separates host and port
        pass
    return server


class SimpleDNSExporter(MetricsHandler):
    """Primary simple_dns_exporter class.

    MetricsHandler subclass for incoming scrape requests. Initiated on each
    request as a handler by http.server.ThreadingHTTPServer().

    The configure() classmethod can optionally be called to set the config before use.

    Attributes:
    -----------
        config: The simple_dns_exporter.config.Config instance used for all probes.

    """

    __version__ = __version__

    # replaced by configure() before the server starts
    config: Config = Config.create()

    @classmethod
    def configure(cls, config: Config) -> None:
        """Set the config used by all requests handled by this class."""
        cls.config = config
        logger.info(f"Configured with query timeout {config.query_timeout} seconds")

    def parse_querystring(self) -> tuple[urllib.parse.SplitResult, dict[str, str]]:
        """Parse the incoming url and then the querystring."""
        # parse incoming request
        url = urllib.parse.urlsplit(self.path)
        parsed_qs = urllib.parse.parse_qs(url.query)
        # querystring values are all lists when returned from parse_qs(),
        # so take the first item only (since multiple values are not supported)
        qs: dict[str, str] = {k: v[0] for k, v in parsed_qs.items()}
        return url, qs

    def handle_probe_request(self) -> None:
        """Handle incoming HTTP GET requests to /probe."""
        logger.debug(f"Got {self.url.path} request from client {self.client_address}")
        target = self.qs.get("target", "").strip()
        server = self.qs.get("server", "").strip()
        if not target:
            logger.info("request had empty target")
            self.send_text_response(code=400, body="Bad Request")
            return
        if not server:
            logger.info("request had empty server")
            self.send_text_response(code=400, body="Bad Request")
            return
        server = add_default_port(server)

        with ProbeContext.with_timeout(self.config.query_timeout) as ctx:
            metric_set = probe(target=target, server=server, ctx=ctx)

        logger.debug("Initialising CollectorRegistry for the probe metrics")
        registry = CollectorRegistry()
        registry.register(EphemeralCollector(metric_set=metric_set))
        # one probe per connection
        logger.debug("Returning DNS probe metrics")
        self.send_metric_response(registry=registry, query=self.qs, close=True)

    def do_GET(self) -> None:  # noqa: N802
        """Handle incoming HTTP GET requests."""
        # parse the scrape request url and querystring
        self.url, self.qs = self.parse_querystring()
        logger.debug(f"Got HTTP request for {self.url.geturl()} - parsed qs is {self.qs}")
        # increase the persistent http request metric
        simple_dns_exporter_http_requests_total.labels(path=self.url.path).inc()

        # /probe is for doing a DNS query, it returns metrics about just that one dns query
        if self.url.path == "/probe":
            self.handle_probe_request()

        # health check endpoint
        elif self.url.path == "/health":
            self.send_text_response(code=200, body="OK")

        # this endpoint exposes metrics about the exporter itself and the python process
        elif self.url.path == "/metrics":
            logger.debug("Returning exporter metrics for request to /metrics")
            self.send_metric_response(registry=self.registry, query=self.qs)

        # the root just returns a bit of informational html
        elif self.url.path == "/":
            logger.debug("Returning index page for request to /")
            self.send_text_response(code=200, body=INDEX, content_type="text/html; charset=utf-8")

        # unknown endpoint
        else:
            logger.debug(f"Unknown endpoint '{self.url.path}' returning 404")
            self.send_text_response(code=404, body="404 not found")

    def send_text_response(self, *, code: int, body: str, content_type: str = "text/plain; charset=utf-8") -> None:
        """Send a simple text response with the given status code."""
        output = body.encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(output)))
        self.end_headers()
        self.wfile.write(output)
        simple_dns_exporter_http_responses_total.labels(path=self.url.path, response_code=code).inc()

    def send_metric_response(
        self,
        registry: CollectorRegistry | RestrictedRegistry,
        query: dict[str, str],
        *,
        close: bool = False,
    ) -> None:
        """Bake and send output from the provided registry and querystring."""
        # Bake output
        status, headers, output = exposition._bake_output(  # type: ignore[no-untyped-call]  # noqa: SLF001
            registry=registry,
            accept_header=self.headers.get("Accept"),
            accept_encoding_header=self.headers.get("Accept-Encoding"),
            params=query,
            disable_compression=False,
        )
        headers.append(("Content-Length", str(len(output))))
        if close:
            # send_header() sets self.close_connection when it sees this header
            headers.append(("Connection", "close"))
        # Return output
        code = int(status.split(" ")[0])
        self.send_response(code)
        for header in headers:
            self.send_header(*header)
        self.end_headers()
        self.wfile.write(output)
        simple_dns_exporter_http_responses_total.labels(path=self.url.path, response_code=code).inc()

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        """Send the http.server access log to the logger instead of stderr."""
        logger.debug(f"{self.address_string()} - {format % args}")
