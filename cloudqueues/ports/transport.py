"""
TransportPort — sends one HTTP request and returns the raw response.

The transport does not interpret status codes; classification happens in
the request pipeline. Network failures are raised as TransportError.
Retry and back-off, if wanted, belong inside a transport implementation.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Protocol, runtime_checkable


@dataclasses.dataclass(frozen=True)
class TransportResponse:
    """
    Raw response as seen by the pipeline.

    headers must be case-insensitive (httpx.Headers, or any Mapping that
    normalises keys); use header() for lookups.
    """

    status_code: int
    headers: Mapping[str, str]
    content: bytes = b""

    def header(self, name: str) -> str | None:
        value = self.headers.get(name)
        if value is None:
            value = self.headers.get(name.lower())
        return value

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@runtime_checkable
class TransportPort(Protocol):
    """
    Minimal interface required by the request pipeline.

    Implementing adapters (built-in):
      - HttpxTransport — httpx.AsyncClient
    """

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        content: bytes | None = None,
    ) -> TransportResponse:
        """
        Dispatch a request.

        Raises
        ------
        TransportError   for connection, timeout or protocol failures
        """
        ...

    async def close(self) -> None:
        """Release pooled connections. No-op allowed."""
        ...
