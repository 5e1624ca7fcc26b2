"""
RequestPipeline — turns a logical operation into one authenticated HTTP call.

Every call runs the same steps, each a plain await:

  1. token      identity provider → X-Auth-Token
  2. base URL   EndpointResolver (cached after the first call)
  3. address    UriTemplate.expand(params), then an optional uri_transform
  4. headers    Accept, Client-ID, User-Agent (+ Content-Type with a body)
  5. body       codec.encode()
  6. dispatch   TransportPort.send()
  7. classify   2xx + body      → payload decoded to result_type
                2xx, bad body   → MalformedResponseError
                2xx, no body    → payload None
                accept_status   → payload None (operation-defined outcome)
                404             → ItemNotFoundError
                anything else   → ResponseError

Cancellation is ordinary asyncio task cancellation: it takes effect at the
next await. A request already handed to the transport may still reach the
server; cancelling only stops the client from waiting for the answer.

The pipeline never retries, throttles or deduplicates.
"""
from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Callable, Collection, Mapping
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import ValidationError

from cloudqueues.core import codec
from cloudqueues.core.endpoint import EndpointResolver
from cloudqueues.core.uritemplate import UriTemplate
from cloudqueues.domain.errors import ItemNotFoundError, MalformedResponseError, ResponseError
from cloudqueues.ports.identity import IdentityProviderPort
from cloudqueues.ports.transport import TransportPort, TransportResponse

T = TypeVar("T")

UriTransform = Callable[[str], str]

DEFAULT_USER_AGENT = "cloudqueues/0.1.0"


class _NoBody:
    def __repr__(self) -> str:
        return "NO_BODY"


NO_BODY: Any = _NoBody()


@dataclasses.dataclass(frozen=True)
class PreparedRequest:
    """An addressed, authenticated request ready for dispatch."""

    method: str
    url: str
    headers: dict[str, str]
    content: bytes | None = None


@dataclasses.dataclass(frozen=True)
class ClassifiedResponse(Generic[T]):
    """
    A response the operation accepted.

    payload is the decoded body, or None for bodiless and accept_status
    responses. method and url identify the request that produced it.
    """

    status_code: int
    payload: T | None
    raw: TransportResponse
    method: str
    url: str

    def header(self, name: str) -> str | None:
        return self.raw.header(name)

    def required(self) -> T:
        """The payload. A success without a body raises MalformedResponseError."""
        if self.payload is None:
            raise MalformedResponseError(
                self.status_code, self.raw.text, self.method, self.url, "no body"
            )
        return self.payload


@dataclasses.dataclass
class RequestPipeline:
    """
    Parameters
    ----------
    identity   : any IdentityProviderPort implementation
    resolver   : EndpointResolver owned by the same facade
    transport  : any TransportPort implementation
    client_id  : sent as Client-ID; one per facade instance
    user_agent : sent as User-Agent
    """

    identity: IdentityProviderPort
    resolver: EndpointResolver
    transport: TransportPort
    client_id: uuid.UUID = dataclasses.field(default_factory=uuid.uuid4)
    user_agent: str = DEFAULT_USER_AGENT

    async def prepare(
        self,
        method: str,
        template: UriTemplate,
        params: Mapping[str, str | None],
        body: Any = NO_BODY,
        uri_transform: UriTransform | None = None,
    ) -> PreparedRequest:
        """Steps 1–5: authenticate, address, and serialize the request."""
        token = await self.identity.get_token()
        base_url = await self.resolver.resolve()

        url = base_url + template.expand(params)
        if uri_transform is not None:
            url = uri_transform(url)

        headers = {
            "Accept": "application/json",
            "X-Auth-Token": token.id,
            "Client-ID": str(self.client_id),
            "User-Agent": self.user_agent,
        }
        content: bytes | None = None
        if body is not NO_BODY:
            headers["Content-Type"] = "application/json"
            content = codec.encode(body)

        return PreparedRequest(method=method, url=url, headers=headers, content=content)

    async def execute(
        self,
        request: PreparedRequest,
        result_type: type[T] | Any = None,
        *,
        accept_status: Collection[int] = (),
    ) -> ClassifiedResponse[T]:
        """Steps 6–7: dispatch and classify."""
        response = await self.transport.send(
            request.method, request.url, request.headers, request.content
        )
        logger.debug(
            "{} {} -> {}", request.method, request.url, response.status_code
        )
        return classify(request, response, result_type, accept_status)

    async def call(
        self,
        method: str,
        template: UriTemplate,
        params: Mapping[str, str | None],
        result_type: type[T] | Any = None,
        *,
        body: Any = NO_BODY,
        uri_transform: UriTransform | None = None,
        accept_status: Collection[int] = (),
    ) -> ClassifiedResponse[T]:
        """prepare() followed by execute()."""
        request = await self.prepare(method, template, params, body, uri_transform)
        return await self.execute(request, result_type, accept_status=accept_status)


def classify(
    request: PreparedRequest,
    response: TransportResponse,
    result_type: Any,
    accept_status: Collection[int] = (),
) -> ClassifiedResponse[Any]:
    """Map a raw response onto a payload or a typed failure."""
    status = response.status_code
    if 200 <= status < 300:
        payload = None
        if result_type is not None and response.content.strip():
            try:
                payload = codec.decode(response.content, result_type)
            except ValidationError as exc:
                raise MalformedResponseError(
                    status, response.text, request.method, request.url, str(exc)
                ) from exc
        return ClassifiedResponse(status, payload, response, request.method, request.url)

    if status in accept_status:
        return ClassifiedResponse(status, None, response, request.method, request.url)

    error_cls = ItemNotFoundError if status == 404 else ResponseError
    raise error_cls(status, response.text, request.method, request.url)
