"""Remote state client: HTTP access to the daemon."""

from syncdash.client.errors import (
    DaemonError,
    MissingApiKeyError,
    ResponseDecodeError,
    TransportError,
)
from syncdash.client.http import AsyncHttpClient
from syncdash.client.rest import DaemonClient

__all__ = [
    "AsyncHttpClient",
    "DaemonClient",
    "DaemonError",
    "MissingApiKeyError",
    "ResponseDecodeError",
    "TransportError",
]
