"""``simple_dns_exporter.config`` contains all the configuration related code for simple_dns_exporter.

The primary class is the Config object. Config values are merged from (lowest precedence first)
the defaults, an optional YAML config file, the environment, and the command line.
"""

from __future__ import annotations

import json
import logging
import math
import os
import re
import typing as t
import urllib.parse
from dataclasses import asdict, dataclass
from pathlib import Path

import yaml

from simple_dns_exporter.exceptions import ConfigError

# get logger
logger = logging.getLogger(f"simple_dns_exporter.{__name__}")

DEFAULT_BIND_ADDR = "0.0.0.0:9153"
DEFAULT_QUERY_TIMEOUT = 5.0

# environment variable names for each config key
ENVIRONMENT = {
    "bind_addr": "BIND_ADDR",
    "query_timeout": "QUERY_TIMEOUT",
}

# duration units and their length in seconds
DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str | float) -> float:
    """Parse a duration like ``5s``, ``500ms`` or ``1m30s`` and return it in seconds.

    A plain number (or a string with a plain number) is taken as seconds. Infinite and NaN
    values are rejected.
    """
    if isinstance(value, bool):
        raise ConfigError(f"Invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return check_finite(float(value), value)
    text = str(value).strip()
    try:
        return check_finite(float(text), value)
    except ValueError:
        pass
    seconds = 0.0
    pos = 0
    for match in DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * DURATION_UNITS[match.group(2)]
        pos = match.end()
    if not text or pos != len(text):
        raise ConfigError(f"Invalid duration {value!r}")
    return check_finite(seconds, value)


def check_finite(seconds: float, value: str | float) -> float:
    """Return seconds if it is a finite number, raise ConfigError if not."""
    if not math.isfinite(seconds):
        raise ConfigError(f"Invalid duration {value!r}, it must be finite")
    return seconds


def split_bind_addr(bind_addr: str) -> tuple[str, int]:
    """Split a bind address like ``0.0.0.0:9153``, ``[::]:9153`` or ``:9153`` into host and port.

    An empty host means all IPv4 addresses.
    """
    splitresult = urllib.parse.urlsplit(f"//{bind_addr}")
    try:
        port = splitresult.port
    except ValueError as e:
        raise ConfigError(f"Invalid port in bind address {bind_addr!r}") from e
    if port is None:
        raise ConfigError(f"No port in bind address {bind_addr!r}")
    return splitresult.hostname or "0.0.0.0", port  # noqa: S104


@dataclass
class Config:
    """``simple_dns_exporter.config.Config`` defines the config structure used in simple_dns_exporter.

    The defaults for each config key are defined in the ``simple_dns_exporter.config.Config.create()`` method.
    """

    bind_addr: str
    """str: The address and port to listen on for HTTP requests, like ``0.0.0.0:9153`` or ``[::]:9153``.
    Default is ``0.0.0.0:9153``"""

    query_timeout: float
    """float: How long to wait for a DNS response before the probe is declared a timeout. Unit is seconds.
    Default is 5.0."""

    def __post_init__(self) -> None:
        """Validate as much as possible."""
        # validate bind address
        split_bind_addr(self.bind_addr)

        # validate timeout
        if not (math.isfinite(self.query_timeout) and self.query_timeout > 0):
            logger.error(f"query_timeout must be positive and finite, not {self.query_timeout}")
            raise ConfigError("query_timeout must be positive and finite")

    @classmethod
    def create(
        cls: type[Config],
        *,
        bind_addr: str = DEFAULT_BIND_ADDR,
        query_timeout: str | float = DEFAULT_QUERY_TIMEOUT,
    ) -> Config:
        """Return an instance of the Config class with values from the provided parameters overriding the defaults."""
        return cls(
            bind_addr=str(bind_addr),
            query_timeout=parse_duration(query_timeout),
        )

    def listen_address(self) -> tuple[str, int]:
        """Return the (host, port) tuple to bind the HTTP server to."""
        return split_bind_addr(self.bind_addr)

    def json(self) -> str:
        """Return a json version of the config. Mostly used in unit tests."""
        return json.dumps(asdict(self))


class ConfigDict(t.TypedDict, total=False):
    """A TypedDict to help hold config dicts before they become Config objects.

    ``simple_dns_exporter.config.ConfigDict`` has all the same keys as the final
    ``simple_dns_exporter.config.Config`` object does, but values may still be strings.
    """

    bind_addr: str
    query_timeout: str | float


def read_config_file(path: str | Path) -> ConfigDict:
    """Read a YAML config file and return the known keys as a ConfigDict."""
    with Path(path).open() as f:
        try:
            configfile = yaml.load(f, Loader=yaml.SafeLoader)
        except yaml.YAMLError as e:
            raise ConfigError(f"Unable to parse YAML config file {path}") from e
    if configfile is None:
        # empty file
        return ConfigDict()
    if not isinstance(configfile, dict):
        raise ConfigError(f"Invalid config file {path} - yaml was valid but is not a mapping")
    unknown = set(configfile).difference(ConfigDict.__annotations__)
    if unknown:
        raise ConfigError(f"Invalid config file {path} - unknown keys {sorted(unknown)}")
    logger.debug(f"Read {len(configfile)} settings from config file {path}")
    return ConfigDict(**configfile)  # type: ignore[typeddict-item]


def read_environment(environ: t.Mapping[str, str] | None = None) -> ConfigDict:
    """Return the config keys which are set in the environment."""
    if environ is None:
        environ = os.environ
    config = ConfigDict()
    for key, variable in ENVIRONMENT.items():
        if environ.get(variable):
            logger.debug(f"Using {variable} from environment for {key}")
            config[key] = environ[variable]  # type: ignore[literal-required]
    return config


def build_config(
    *,
    config_file: str | Path | None = None,
    environ: t.Mapping[str, str] | None = None,
    overrides: ConfigDict | None = None,
) -> Config:
    """Merge defaults, config file, environment and overrides (in that order) and return a Config.

    Raises:
    -------
        ConfigError: If any of the sources has an invalid value.

    """
    config = ConfigDict()
    if config_file:
        config.update(read_config_file(config_file))
    config.update(read_environment(environ))
    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})  # type: ignore[typeddict-item]
    try:
        return Config.create(**config)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid config {config}") from e
