"""pytest fixtures file for the simple_dns_exporter project."""

import socket
import time
from http.server import ThreadingHTTPServer
from threading import Event, Thread

import dns.message
import dns.rcode
import dns.rrset
import pytest
from prometheus_client.parser import text_string_to_metric_families

from simple_dns_exporter.config import Config
from simple_dns_exporter.entrypoint import main
from simple_dns_exporter.exporter import SimpleDNSExporter

# query names with special behaviour in the fake dns server
FAKE_RCODES = {
    "nxdomain.example.": dns.rcode.NXDOMAIN,
    "servfail.example.": dns.rcode.SERVFAIL,
    "refused.example.": dns.rcode.REFUSED,
}
FAKE_ANSWERS = ("192.0.2.1", "192.0.2.2")


class FakeDNSServer:
    """A tiny UDP DNS server answering queries based on the query name.

    - names in FAKE_RCODES get an empty response with that rcode
    - slow.example. never gets a response
    - empty.example. gets a NOERROR response without answers
    - anything else gets a NOERROR response with the two A records in FAKE_ANSWERS
    """

    def __init__(self) -> None:
        """Bind the socket and prepare the stop event."""
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.1)
        self.stop = Event()
        self.queries: list[dns.message.Message] = []

    @property
    def address(self) -> str:
        """Return host:port of the server."""
        host, port = self.sock.getsockname()
        return f"{host}:{port}"

    def respond(self, query: dns.message.Message) -> dns.message.Message | None:
        """Build the response for the query, or None for no response."""
        qname = query.question[0].name.to_text()
        if qname == "slow.example.":
            return None
        response = dns.message.make_response(query)
        if qname in FAKE_RCODES:
            response.set_rcode(FAKE_RCODES[qname])
        elif qname != "empty.example.":
            response.answer.append(dns.rrset.from_text(query.question[0].name, 300, "IN", "A", *FAKE_ANSWERS))
        return response

    def serve(self) -> None:
        """Answer queries until stopped."""
        while not self.stop.is_set():
            try:
                wire, addr = self.sock.recvfrom(65535)
            except socket.timeout:
                continue
            query = dns.message.from_wire(wire)
            self.queries.append(query)
            response = self.respond(query)
            if response is not None:
                self.sock.sendto(response.to_wire(), addr)


@pytest.fixture(scope="session")
def fake_dns_server():
    """Run a fake DNS server on a random port on 127.0.0.1 and return it."""
    server = FakeDNSServer()
    print(f"Running fake DNS server on {server.address} ...")
    thread = Thread(target=server.serve)
    thread.daemon = True
    thread.start()
    yield server
    print("Beginning teardown")
    server.stop.set()
    thread.join()
    server.sock.close()


@pytest.fixture
def exporter():
    """Fixture to return a clean version of the SimpleDNSExporter class."""

    class CleanTestExporter(SimpleDNSExporter):
        """This is just here so tests can change cls.config without changing the global SimpleDNSExporter class."""

    CleanTestExporter.configure(config=Config.create(bind_addr="127.0.0.1:0", query_timeout=0.5))
    return CleanTestExporter


@pytest.fixture
def exporter_url(exporter):
    """Run an exporter with a 0.5 second query timeout on a random port and return the base url."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), exporter)
    server.daemon_threads = True
    thread = Thread(target=server.serve_forever)
    thread.daemon = True
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()


@pytest.fixture(scope="session")
def simple_dns_exporter_main():
    """Run a server with main() on 127.0.0.1:29153."""
    print("Running server with main() on 127.0.0.1:29153 ...")
    thread = Thread(
        target=main,
        args=(["-b", "127.0.0.1:29153", "-t", "1s", "-d"],),
    )
    thread.daemon = True
    thread.start()
    time.sleep(1)
    if not thread.is_alive():
        pytest.fail("Unable to create test instance on 127.0.0.1:29153")
    yield "http://127.0.0.1:29153"
    print("Beginning teardown")


@pytest.fixture
def mock_udp_connectionrefusederror(mocker):
    """Monkeypatch dns.query.udp to raise ConnectionRefusedError."""
    return mocker.patch(
        "dns.query.udp",
        side_effect=ConnectionRefusedError("mocked"),
    )


@pytest.fixture
def mock_udp_oserror(mocker):
    """Monkeypatch dns.query.udp to raise OSError (like ICMP network unreachable)."""
    return mocker.patch(
        "dns.query.udp",
        side_effect=OSError(101, "Network is unreachable"),
    )


@pytest.fixture
def mock_udp_socket_timeout(mocker):
    """Monkeypatch dns.query.udp to raise socket.timeout."""
    return mocker.patch(
        "dns.query.udp",
        side_effect=socket.timeout("mocked"),
    )


def parse_metrics(text):
    """Parse exposition text and return a dict of (sample name, sorted label items) to value."""
    samples = {}
    for family in text_string_to_metric_families(text):
        for sample in family.samples:
            samples[(sample.name, tuple(sorted(sample.labels.items())))] = sample.value
    return samples


@pytest.fixture
def metrics_parser():
    """Return the parse_metrics helper."""
    return parse_metrics
