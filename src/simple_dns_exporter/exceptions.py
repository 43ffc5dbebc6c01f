"""This module contains the custom exceptions used in simple_dns_exporter."""


class ConfigError(Exception):
    """Exception class used when invalid config values are encountered."""


class CleanupAndExit(Exception):  # noqa: N818
    """Exception raised by the signal handler to trigger cleanup and exit."""


class ContextError(Exception):
    """Base class for the errors reported by a ProbeContext which is done."""


class DeadlineExceeded(ContextError):  # noqa: N818
    """Exception used when the deadline of a ProbeContext has passed."""

    def __init__(self) -> None:
        """Raise with a fixed message."""
        super().__init__("probe deadline exceeded")


class ProbeCanceled(ContextError):  # noqa: N818
    """Exception used when a ProbeContext was cancelled before the probe finished."""

    def __init__(self) -> None:
        """Raise with a fixed message."""
        super().__init__("probe canceled")


class InvalidServerError(ValueError):
    """Exception used when a server string can not be split into host and port."""

    def __init__(self, server: str) -> None:
        """Take the offending server string as argument."""
        super().__init__(f"Unable to parse server {server!r} as host:port")
