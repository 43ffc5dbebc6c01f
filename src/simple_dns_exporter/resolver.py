"""``simple_dns_exporter.resolver`` performs the actual DNS exchange using dnspython.

The exchange() function is the only place where the network is touched. It raises on any
failure and leaves the classification of the failure to the prober.
"""

from __future__ import annotations

import ipaddress
import logging
import random
import socket
import urllib.parse
from typing import TYPE_CHECKING

import dns.query

from simple_dns_exporter.exceptions import InvalidServerError
from simple_dns_exporter.metrics import simple_dns_exporter_dns_queries_total

if TYPE_CHECKING:  # pragma: no cover
    from dns.message import Message

    from simple_dns_exporter.context import ProbeContext

logger = logging.getLogger(f"simple_dns_exporter.{__name__}")


def parse_server(server: str) -> tuple[str, int]:
    """Split a ``host:port`` server string into host and port.

    The server at this point can be:
      - a v4 ip:port
      - a [v6]:port
      - a hostname:port

    Parse it with urllib.parse.urlsplit and return the hostname and port.
    """
    # an empty scheme and a leading // makes urlsplit treat the whole string as netloc
    splitresult = urllib.parse.urlsplit(f"//{server}")
    try:
        port = splitresult.port
    except ValueError as e:
        raise InvalidServerError(server) from e
    if not splitresult.hostname or port is None:
        raise InvalidServerError(server)
    return splitresult.hostname, port


def resolve_ip(host: str) -> str:
    """Return host as-is if it is an IP, otherwise resolve it with getaddrinfo and pick one of the results."""
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        pass
    logger.debug(f"doing getaddrinfo for hostname {host}")
    # socket.gaierror is an OSError and ends up as an unknown_error outcome
    result = socket.getaddrinfo(host, 0, type=socket.SOCK_DGRAM)
    return str(random.choice(result)[4][0])  # noqa: S311


def exchange(query: Message, server: str, ctx: ProbeContext) -> Message:
    """Send the query to the server over UDP and return the response.

    The exchange is bounded by the remaining time of the context. If the context is already
    done the context error is raised before anything is sent.

    Raises:
    -------
        DeadlineExceeded, ProbeCanceled: The context was done before the query was sent.
        dns.exception.Timeout: No response arrived before the deadline.
        OSError: Resolving the server or the network exchange failed.
        InvalidServerError: The server string could not be parsed.
        dns.exception.DNSException: The response could not be parsed.

    """
    ctx.raise_if_done()
    host, port = parse_server(server)
    ip = resolve_ip(host)
    ctx.raise_if_done()

    logger.debug(f"Doing DNS query {query.question} with server {server} (using IP {ip})")
    simple_dns_exporter_dns_queries_total.inc()
    return dns.query.udp(
        q=query,
        where=ip,
        port=port,
        timeout=ctx.remaining(),
        ignore_unexpected=True,
    )
