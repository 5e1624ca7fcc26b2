"""
HttpxTransport — TransportPort implementation on httpx.AsyncClient.

Status codes are passed through untouched; only network-level failures
(connect errors, timeouts, protocol errors) become TransportError.
Redirects are not followed: Location headers carry meaning for the queues
API and must reach the pipeline as sent.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Mapping

import httpx

from cloudqueues.domain.errors import TransportError
from cloudqueues.ports.transport import TransportResponse


@dataclasses.dataclass
class HttpxTransport:
    """
    Parameters
    ----------
    client          : httpx.AsyncClient — created lazily if omitted
    connect_timeout : seconds to establish a connection
    read_timeout    : seconds to wait for response data
    """

    client: httpx.AsyncClient | None = None
    connect_timeout: float = 5.0
    read_timeout: float = 30.0

    _owns_client: bool = dataclasses.field(default=False, init=False, repr=False)

    def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = httpx.AsyncClient(follow_redirects=False)
            self._owns_client = True
        return self.client

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.read_timeout,
            pool=self.connect_timeout,
        )

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        content: bytes | None = None,
    ) -> TransportResponse:
        client = self._get_client()
        try:
            response = await client.request(
                method,
                url,
                headers=dict(headers),
                content=content,
                timeout=self._timeout(),
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"timeout during {method} {url}", exc) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed", exc) from exc
        return TransportResponse(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
        )

    async def close(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.aclose()
            self.client = None
            self._owns_client = False
