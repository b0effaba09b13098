"""Client error taxonomy."""

from __future__ import annotations


class DaemonError(Exception):
    """Base class for everything that can go wrong talking to the daemon."""


class MissingApiKeyError(DaemonError):
    """No API key configured. Fatal; never retried."""

    def __init__(self) -> None:
        super().__init__(
            "Missing API key to access the daemon. Set SYNCTHING_API_KEY "
            "or daemon.api_key in the config file."
        )


class TransportError(DaemonError):
    """Network failure, timeout, or an unexpected HTTP status."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ResponseDecodeError(DaemonError):
    """A whole response body was not valid JSON or did not match its model."""
