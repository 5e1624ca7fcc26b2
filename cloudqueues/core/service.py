"""
QueueingService — the client facade for the Cloud Queues (Marconi v1) API.

Usage
-----
    from datetime import timedelta
    from cloudqueues import Message, QueueName, QueueingService

    async with QueueingService(identity, catalog, transport) as svc:
        queue = QueueName("thumbnails")
        await svc.post_messages(queue, Message(body={"image": "cat.png"}))

        claim = await svc.claim_messages(
            queue, limit=5, ttl=timedelta(minutes=5), grace=timedelta(minutes=1)
        )
        async with claim:
            for message in claim.messages:
                process(message.body)
                await svc.delete_message(queue, message.id, claim)

Every operation validates its arguments before any I/O (ValueError or
TypeError), then goes through the RequestPipeline. Non-2xx responses raise
ResponseError / ItemNotFoundError unless the operation gives the status a
meaning of its own:

  claim_messages   204 → claim with no messages
  queue_exists     404 → False
  create_queue     204 → False (queue already existed)
  release_claim    404 → success (claim already released or expired)
  list_messages    no "next" link on the marker page → empty page, no request
"""
from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Iterable, Mapping
from datetime import timedelta
from types import TracebackType
from typing import TYPE_CHECKING, Any, TypeVar
from urllib.parse import urljoin, urlsplit, urlunsplit

from loguru import logger
from pydantic import BaseModel

from cloudqueues.core.cursor import LIST_MESSAGES, next_marker
from cloudqueues.core.endpoint import (
    DEFAULT_SERVICE_NAME,
    DEFAULT_SERVICE_TYPE,
    EndpointResolver,
)
from cloudqueues.core.pipeline import DEFAULT_USER_AGENT, RequestPipeline
from cloudqueues.core.uritemplate import UriTemplate
from cloudqueues.domain.claim import Claim, ClaimState
from cloudqueues.domain.models import (
    ClaimDocument,
    CloudQueue,
    HomeDocument,
    Message,
    MessageId,
    PostedMessages,
    QueuedMessage,
    QueuedMessageList,
    QueueList,
    QueueName,
    QueueStatistics,
)
from cloudqueues.ports.catalog import ServiceCatalogPort
from cloudqueues.ports.identity import IdentityProviderPort
from cloudqueues.ports.transport import TransportPort

if TYPE_CHECKING:
    from cloudqueues.config import ClientSettings

M = TypeVar("M", bound=BaseModel)

HOME = UriTemplate("/")
HEALTH = UriTemplate("/health")
QUEUES = UriTemplate("/queues?marker={marker}&limit={limit}&detailed={detailed}")
QUEUE = UriTemplate("/queues/{queue_name}")
QUEUE_METADATA = UriTemplate("/queues/{queue_name}/metadata")
QUEUE_STATS = UriTemplate("/queues/{queue_name}/stats")
MESSAGES = UriTemplate("/queues/{queue_name}/messages")
MESSAGES_BY_ID = UriTemplate("/queues/{queue_name}/messages?ids={ids}")
MESSAGE = UriTemplate("/queues/{queue_name}/messages/{message_id}?claim_id={claim_id}")
CLAIMS = UriTemplate("/queues/{queue_name}/claims?limit={limit}")
CLAIM = UriTemplate("/queues/{queue_name}/claims/{claim_id}")


def literal_commas(url: str) -> str:
    """Un-escape commas in the query string; the service rejects "%2C" in ids."""
    parts = urlsplit(url)
    return urlunsplit(parts._replace(query=parts.query.replace("%2C", ",")))


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _seconds(value: timedelta) -> int:
    return int(value.total_seconds())


def _queue(queue_name: QueueName | str | None) -> QueueName:
    if queue_name is None:
        raise TypeError("queue_name is required")
    if isinstance(queue_name, QueueName):
        return queue_name
    return QueueName(queue_name)


def _message_id(message_id: MessageId | str | None) -> MessageId:
    if message_id is None:
        raise TypeError("message_id is required")
    if isinstance(message_id, MessageId):
        return message_id
    return MessageId(message_id)


def _message_ids(message_ids: Iterable[MessageId | str] | None) -> list[MessageId]:
    if message_ids is None:
        raise TypeError("message_ids is required")
    ids = list(message_ids)
    if any(i is None for i in ids):
        raise TypeError("message_ids cannot contain None")
    if not ids:
        raise ValueError("message_ids cannot be empty")
    return [_message_id(i) for i in ids]


def _check_limit(limit: int | None, *, allow_zero: bool = False) -> None:
    if limit is None:
        return
    if limit < 0 or (limit == 0 and not allow_zero):
        raise ValueError(f"limit out of range: {limit}")


def _check_claim(claim: Claim | None) -> Claim:
    if claim is None:
        raise TypeError("claim is required")
    return claim


def _claim_id(claim: Claim) -> str:
    if claim.id is None:
        raise ValueError("claim has no server location")
    return claim.id.value


@dataclasses.dataclass
class QueueingService:
    """
    Facade over the queues API for one identity, region and client id.

    Parameters
    ----------
    identity     : any IdentityProviderPort implementation
    catalog      : any ServiceCatalogPort implementation
    transport    : any TransportPort implementation
    region       : catalog region of the queues endpoint
    internal_url : use the internal (service-net) endpoint
    client_id    : sent as Client-ID; this client's own messages are only
                   listed with echo=True
    user_agent   : sent as User-Agent

    The resolved endpoint and the home document are cached on the instance.
    """

    identity: IdentityProviderPort
    catalog: ServiceCatalogPort
    transport: TransportPort
    region: str | None = None
    internal_url: bool = False
    client_id: uuid.UUID = dataclasses.field(default_factory=uuid.uuid4)
    user_agent: str = DEFAULT_USER_AGENT
    service_type: str = DEFAULT_SERVICE_TYPE
    service_name: str | None = DEFAULT_SERVICE_NAME

    resolver: EndpointResolver = dataclasses.field(init=False, repr=False)
    pipeline: RequestPipeline = dataclasses.field(init=False, repr=False)
    _home: HomeDocument | None = dataclasses.field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.resolver = EndpointResolver(
            catalog=self.catalog,
            region=self.region,
            internal_url=self.internal_url,
            service_type=self.service_type,
            service_name=self.service_name,
        )
        self.pipeline = RequestPipeline(
            identity=self.identity,
            resolver=self.resolver,
            transport=self.transport,
            client_id=self.client_id,
            user_agent=self.user_agent,
        )

    @classmethod
    def from_settings(cls, settings: ClientSettings | None = None) -> QueueingService:
        """Build a service with httpx transport and identity from settings."""
        from cloudqueues.config import build_service

        return build_service(settings)

    async def __aenter__(self) -> QueueingService:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        await self.transport.close()

    # ------------------------------------------------------------------ #
    # Service                                                              #
    # ------------------------------------------------------------------ #

    async def get_home(self) -> HomeDocument:
        """The service home document; fetched once per instance."""
        if self._home is not None:
            return self._home
        response = await self.pipeline.call("GET", HOME, {}, HomeDocument)
        self._home = response.payload or HomeDocument()
        return self._home

    async def get_node_health(self) -> None:
        """Raises ResponseError unless the node reports healthy."""
        await self.pipeline.call("HEAD", HEALTH, {})

    # ------------------------------------------------------------------ #
    # Queues                                                               #
    # ------------------------------------------------------------------ #

    async def create_queue(self, queue_name: QueueName | str) -> bool:
        """Create the queue. Returns False if it already existed."""
        queue = _queue(queue_name)
        response = await self.pipeline.call("PUT", QUEUE, {"queue_name": queue.value})
        return response.status_code == 201

    async def list_queues(
        self,
        marker: QueueName | str | None = None,
        limit: int | None = None,
        detailed: bool = False,
    ) -> list[CloudQueue]:
        """One page of queues, starting after `marker`."""
        _check_limit(limit)
        params = {
            "marker": _queue(marker).value if marker is not None else None,
            "limit": str(limit) if limit is not None else None,
            "detailed": _flag(detailed),
        }
        response = await self.pipeline.call("GET", QUEUES, params, QueueList)
        if response.payload is None:
            return []
        return list(response.payload.queues)

    async def queue_exists(self, queue_name: QueueName | str) -> bool:
        queue = _queue(queue_name)
        response = await self.pipeline.call(
            "HEAD", QUEUE, {"queue_name": queue.value}, accept_status=(404,)
        )
        return response.status_code != 404

    async def delete_queue(self, queue_name: QueueName | str) -> None:
        queue = _queue(queue_name)
        await self.pipeline.call("DELETE", QUEUE, {"queue_name": queue.value})

    async def set_queue_metadata(
        self, queue_name: QueueName | str, metadata: Mapping[str, Any] | BaseModel
    ) -> None:
        queue = _queue(queue_name)
        if metadata is None:
            raise TypeError("metadata is required")
        await self.pipeline.call(
            "PUT", QUEUE_METADATA, {"queue_name": queue.value}, body=metadata
        )

    async def get_queue_metadata(
        self, queue_name: QueueName | str, model: type[M] | None = None
    ) -> M | dict[str, Any]:
        """Queue metadata as a dict, or validated into `model`."""
        queue = _queue(queue_name)
        target: Any = model if model is not None else dict[str, Any]
        response = await self.pipeline.call(
            "GET", QUEUE_METADATA, {"queue_name": queue.value}, target
        )
        if response.payload is None:
            return model.model_validate({}) if model is not None else {}
        return response.payload

    async def get_queue_statistics(self, queue_name: QueueName | str) -> QueueStatistics:
        queue = _queue(queue_name)
        response = await self.pipeline.call(
            "GET", QUEUE_STATS, {"queue_name": queue.value}, QueueStatistics
        )
        return response.required()

    # ------------------------------------------------------------------ #
    # Messages                                                             #
    # ------------------------------------------------------------------ #

    async def list_messages(
        self,
        queue_name: QueueName | str,
        marker: QueuedMessageList | None = None,
        limit: int | None = None,
        echo: bool = False,
        include_claimed: bool = False,
    ) -> QueuedMessageList:
        """
        One page of messages.

        Pass the previous page as `marker` to continue after it. When that
        page has no "next" link the empty page is returned without a request.
        A page with no messages but a "next" link is returned as sent, so
        paging can continue past it.
        """
        queue = _queue(queue_name)
        _check_limit(limit)
        params = {
            "queue_name": queue.value,
            "limit": str(limit) if limit is not None else None,
            "echo": _flag(echo),
            "include_claimed": _flag(include_claimed),
        }
        if marker is not None:
            token = next_marker(marker)
            if token is None:
                return QueuedMessageList.empty()
            params["marker"] = token

        response = await self.pipeline.call("GET", LIST_MESSAGES, params, QueuedMessageList)
        page = response.payload
        if page is None or (page.is_empty and page.link("next") is None):
            return QueuedMessageList.empty()
        return page

    async def get_message(
        self, queue_name: QueueName | str, message_id: MessageId | str
    ) -> QueuedMessage:
        queue = _queue(queue_name)
        mid = _message_id(message_id)
        response = await self.pipeline.call(
            "GET", MESSAGE, {"queue_name": queue.value, "message_id": mid.value}, QueuedMessage
        )
        return response.required()

    async def get_messages(
        self, queue_name: QueueName | str, message_ids: Iterable[MessageId | str]
    ) -> tuple[QueuedMessage, ...]:
        """Fetch several messages in one request (?ids=a,b,c)."""
        queue = _queue(queue_name)
        ids = _message_ids(message_ids)
        response = await self.pipeline.call(
            "GET",
            MESSAGES_BY_ID,
            {"queue_name": queue.value, "ids": ",".join(i.value for i in ids)},
            tuple[QueuedMessage, ...],
            uri_transform=literal_commas,
        )
        return response.payload or ()

    async def post_messages(
        self, queue_name: QueueName | str, *messages: Message
    ) -> tuple[MessageId, ...]:
        """Post one or more messages. Returns the ids the server assigned."""
        queue = _queue(queue_name)
        if not messages:
            raise ValueError("at least one message is required")
        if any(m is None for m in messages):
            raise TypeError("messages cannot contain None")
        response = await self.pipeline.call(
            "POST",
            MESSAGES,
            {"queue_name": queue.value},
            PostedMessages,
            body=list(messages),
        )
        if response.payload is None:
            return ()
        return response.payload.ids

    async def delete_message(
        self,
        queue_name: QueueName | str,
        message_id: MessageId | str,
        claim: Claim | None = None,
    ) -> None:
        """
        Delete a message. With `claim`, the server rejects the delete unless
        that claim still holds the message.
        """
        queue = _queue(queue_name)
        mid = _message_id(message_id)
        params = {
            "queue_name": queue.value,
            "message_id": mid.value,
            "claim_id": _claim_id(claim) if claim is not None else None,
        }
        await self.pipeline.call("DELETE", MESSAGE, params)

    async def delete_messages(
        self, queue_name: QueueName | str, message_ids: Iterable[MessageId | str]
    ) -> None:
        queue = _queue(queue_name)
        ids = _message_ids(message_ids)
        await self.pipeline.call(
            "DELETE",
            MESSAGES_BY_ID,
            {"queue_name": queue.value, "ids": ",".join(i.value for i in ids)},
            uri_transform=literal_commas,
        )

    # ------------------------------------------------------------------ #
    # Claims                                                               #
    # ------------------------------------------------------------------ #

    async def claim_messages(
        self,
        queue_name: QueueName | str,
        *,
        ttl: timedelta,
        grace: timedelta = timedelta(0),
        limit: int | None = None,
    ) -> Claim:
        """
        Claim up to `limit` messages (server default when None).

        ttl   — lease duration, must be positive
        grace — extra lifetime given to the claimed messages past the lease,
                so that deletes racing the expiry still succeed

        Returns an active Claim; its batch is empty when nothing was
        claimable (204 No Content).
        """
        queue = _queue(queue_name)
        _check_limit(limit, allow_zero=True)
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        if grace < timedelta(0):
            raise ValueError(f"grace cannot be negative, got {grace}")

        response = await self.pipeline.call(
            "POST",
            CLAIMS,
            {"queue_name": queue.value, "limit": str(limit) if limit is not None else None},
            tuple[QueuedMessage, ...],
            body={"ttl": _seconds(ttl), "grace": _seconds(grace)},
        )
        location = self._absolute(response.header("Location"))
        messages = () if response.status_code == 204 else (response.payload or ())

        logger.info("claimed {} message(s) from {} at {}", len(messages), queue, location)
        return Claim(
            service=self,
            queue_name=queue,
            location=location,
            ttl=ttl,
            age=timedelta(0),
            is_new=True,
            messages=messages,
            state=ClaimState.ACTIVE,
        )

    async def query_claim(self, queue_name: QueueName | str, claim: Claim) -> Claim:
        """
        Current server view of a claim, as a new Claim with is_new=False.

        The location is taken from Content-Location, not Location.
        Raises ItemNotFoundError once the claim has expired or been released.
        """
        queue = _queue(queue_name)
        claim = _check_claim(claim)
        response = await self.pipeline.call(
            "GET", CLAIM, {"queue_name": queue.value, "claim_id": _claim_id(claim)}, ClaimDocument
        )
        document = response.required()
        location = self._absolute(response.header("Content-Location"))
        return Claim(
            service=self,
            queue_name=queue,
            location=location,
            ttl=document.ttl,
            age=document.age,
            is_new=False,
            messages=document.messages,
            state=ClaimState.ACTIVE,
        )

    async def update_claim(
        self, queue_name: QueueName | str, claim: Claim, ttl: timedelta
    ) -> None:
        """Set a new ttl on the claim. Age and messages are not refreshed."""
        queue = _queue(queue_name)
        claim = _check_claim(claim)
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        await self.pipeline.call(
            "PATCH",
            CLAIM,
            {"queue_name": queue.value, "claim_id": _claim_id(claim)},
            body={"ttl": _seconds(ttl)},
        )

    async def release_claim(self, queue_name: QueueName | str, claim: Claim) -> None:
        """
        Release the claim so its messages become available again.

        Idempotent: a claim that is already gone (released, expired, or an
        empty claim the server never located) counts as released.
        """
        queue = _queue(queue_name)
        claim = _check_claim(claim)
        if claim.id is None:
            return
        response = await self.pipeline.call(
            "DELETE",
            CLAIM,
            {"queue_name": queue.value, "claim_id": claim.id.value},
            accept_status=(404,),
        )
        if response.status_code == 404:
            logger.debug("claim {} was already gone", claim.location)
        else:
            logger.info("released claim {}", claim.location)

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _absolute(self, location: str | None) -> str | None:
        """Resolve a header location against the cached base URL."""
        if location is None:
            return None
        base = self.resolver.cached or ""
        return urljoin(base + "/", location)
