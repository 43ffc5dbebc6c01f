"""``simple_dns_exporter.entrypoint`` contains argparse stuff and ``simple_dns_exporter`` script entrypoint.

This module is mostly boilerplate code for command-line argument handling and logging.
"""

from __future__ import annotations

import argparse
import logging
import signal
import socket
import sys
import threading
import warnings
from http.server import ThreadingHTTPServer
from typing import TYPE_CHECKING

from simple_dns_exporter.config import Config, ConfigDict, build_config
from simple_dns_exporter.exceptions import CleanupAndExit, ConfigError
from simple_dns_exporter.exporter import SimpleDNSExporter

if TYPE_CHECKING:
    from types import FrameType

# get logger
logger = logging.getLogger(f"simple_dns_exporter.{__name__}")


class ThreadingHTTPServerV6(ThreadingHTTPServer):
    """ThreadingHTTPServer listening on an IPv6 address."""

    address_family = socket.AF_INET6


def get_parser() -> argparse.ArgumentParser:
    """Create and return the argparse object."""
    parser = argparse.ArgumentParser(
        description=f"simple_dns_exporter version {SimpleDNSExporter.__version__}.",
    )

    # optional arguments
    parser.add_argument(
        "-b",
        "--bind-addr",
        dest="bind_addr",
        help="The address and port to listen on, like 0.0.0.0:9153 or [::]:9153. "
        "Overrides the BIND_ADDR environment variable. Default: 0.0.0.0:9153",
        default=None,
    )
    parser.add_argument(
        "-c",
        "--config-file",
        dest="config-file",
        help="The path to the yaml config file to use. The keys bind_addr and query_timeout are read from it.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_const",
        dest="log-level",
        const="DEBUG",
        help="Log at DEBUG level, including every probe and HTTP request. Same as --log-level=DEBUG.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-l",
        "--log-level",
        dest="log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level to use. Default: INFO",
        default="INFO",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_const",
        dest="log-level",
        const="WARNING",
        help="Only log warnings and errors. Same as --log-level=WARNING.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-t",
        "--query-timeout",
        dest="query_timeout",
        help="How long to wait for a DNS response, like 5s or 500ms. "
        "Overrides the QUERY_TIMEOUT environment variable. Default: 5s",
        default=None,
    )
    parser.add_argument(
        "-v",
        "--version",
        dest="version",
        action="store_true",
        help="Print the simple_dns_exporter version and exit.",
        default=argparse.SUPPRESS,
    )
    return parser


def parse_args(
    mockargs: list[str] | None = None,
) -> tuple[argparse.ArgumentParser, argparse.Namespace]:
    """Parse mockargs, or sys.argv[1:] when running for real."""
    parser = get_parser()
    args = parser.parse_args(mockargs or sys.argv[1:])
    return parser, args


def configure_logging(args: argparse.Namespace) -> None:
    """Configure the log format and level."""
    console_logformat = "%(asctime)s %(levelname)s %(name)s.%(funcName)s():%(lineno)i:  %(message)s"
    level = getattr(args, "log-level")
    logging.basicConfig(
        level=level,
        format=console_logformat,
        datefmt="%Y-%m-%d %H:%M:%S %z",
    )
    logger.setLevel(level)
    # also configure the root logger
    rootlogger = logging.getLogger("")
    rootlogger.setLevel(level)
    logger.info(
        f"simple_dns_exporter v{SimpleDNSExporter.__version__} starting up - logging at level {level}",
    )


def get_config(args: argparse.Namespace) -> Config:
    """Build the Config from config file, environment and command-line arguments."""
    overrides = ConfigDict()
    if args.bind_addr is not None:
        overrides["bind_addr"] = args.bind_addr
    if args.query_timeout is not None:
        overrides["query_timeout"] = args.query_timeout
    return build_config(
        config_file=getattr(args, "config-file", None),
        overrides=overrides,
    )


def get_server(config: Config, handler: type[SimpleDNSExporter]) -> ThreadingHTTPServer:
    """Return a ThreadingHTTPServer for the configured listen address and address family."""
    host, port = config.listen_address()
    server_class = ThreadingHTTPServerV6 if ":" in host else ThreadingHTTPServer
    server = server_class((host, port), handler)
    server.daemon_threads = True
    return server


def main(mockargs: list[str] | None = None) -> None:
    """Read config and start exporter."""
    # no python warnings in the exporter output
    if not sys.warnoptions:
        warnings.simplefilter("ignore")

    # parse command-line
    _, args = parse_args(mockargs)

    # handle version check
    if hasattr(args, "version"):
        print(f"simple_dns_exporter version {SimpleDNSExporter.__version__}")  # noqa: T201
        sys.exit(0)

    # configure logging
    configure_logging(args=args)
    logger.debug(f"simple_dns_exporter parsed command-line arguments: {mockargs or sys.argv[1:]}")

    try:
        config = get_config(args=args)
    except (ConfigError, OSError):
        logger.exception("Unable to build a valid configuration - bailing out.")
        sys.exit(1)
    logger.debug(f"Effective configuration: {config.json()}")

    # configure SimpleDNSExporter handler
    handler = SimpleDNSExporter
    handler.configure(config=config)

    # signal handlers can only be installed from the main thread, tests run main() in a thread
    if threading.current_thread() is threading.main_thread():
        logger.debug("Running in main thread, connecting signal handlers...")
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
    else:
        logger.warning("Not running in main thread, skipping signal handlers...")

    logger.info(f"Ready to serve requests. Starting listener on {config.bind_addr}...")
    try:
        server = get_server(config=config, handler=handler)
    except OSError:
        logger.exception(f"Unable to start listener, maybe {config.bind_addr} is in use? bailing out")
        sys.exit(1)
    try:
        server.serve_forever()
    except CleanupAndExit:
        logger.info("Signal received, cleaning up before exit...")
    finally:
        server.server_close()
        logger.info("Listener closed, exiting")


def signal_handler(sig: int, frame: FrameType | None) -> None:
    """Raise CleanupAndExit so main() can close the listener."""
    logger.debug(f"Got signal {sig} in frame {frame}, stopping")
    raise CleanupAndExit


if __name__ == "__main__":  # pragma: no cover
    main()
