"""``simple_dns_exporter.version`` finds the version of the installed package.

Running from a source checkout without installing gives the placeholder version ``0.0.0``.
"""

import logging
from importlib.metadata import PackageNotFoundError, version

logger = logging.getLogger(f"simple_dns_exporter.{__name__}")

try:
    __version__: str = version("simple_dns_exporter")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
    logger.debug("simple_dns_exporter is not installed, version unknown")
