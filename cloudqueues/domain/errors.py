"""
Exception hierarchy for cloudqueues.

CloudQueuesError
├── ServiceNotFoundError — the service catalog has no matching endpoint
├── ResponseError        — non-2xx response with no special meaning for the call
│   ├── ItemNotFoundError — 404 Not Found
│   └── MalformedResponseError — 2xx whose body is missing or has the wrong shape
└── TransportError       — network-level failure (wraps original exception)

Input validation problems are reported with the builtin ValueError and
TypeError before any request is sent.
"""

from __future__ import annotations


class CloudQueuesError(Exception):
    """Base class for all cloudqueues exceptions."""


class ServiceNotFoundError(CloudQueuesError):
    """Raised when the service catalog has no endpoint for the queues service."""

    def __init__(self, service_type: str, region: str | None) -> None:
        self.service_type = service_type
        self.region = region
        where = f" in region {region!r}" if region else ""
        super().__init__(f"No endpoint for service type {service_type!r}{where}")


class ResponseError(CloudQueuesError):
    """
    The server answered with a status the operation does not accept.

    Attributes
    ----------
    status_code : int
    body        : str   raw response body (may be empty)
    method      : str
    url         : str
    """

    def __init__(
        self,
        status_code: int,
        body: str,
        method: str,
        url: str,
        detail: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.method = method
        self.url = url
        if detail is None:
            detail = body
        suffix = f": {detail}" if detail else ""
        super().__init__(f"{method} {url} returned {status_code}{suffix}")


class ItemNotFoundError(ResponseError):
    """404 — the queue, message or claim does not exist (or has expired)."""


class MalformedResponseError(ResponseError):
    """
    A success response whose body is missing or does not have the expected shape.

    reason : str   what was wrong with the body
    """

    def __init__(
        self, status_code: int, body: str, method: str, url: str, reason: str
    ) -> None:
        self.reason = reason
        super().__init__(status_code, body, method, url, f"unusable body: {reason}")


class TransportError(CloudQueuesError):
    """
    Wraps an underlying network failure from a transport adapter.

    Attributes
    ----------
    cause : Exception
        The original exception raised by the HTTP library.
    """

    def __init__(self, message: str, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"{message}: {cause}")
