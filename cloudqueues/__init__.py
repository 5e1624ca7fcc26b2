"""
cloudqueues — asyncio client for OpenStack Marconi / Rackspace Cloud Queues.

Producers post messages to named queues; consumers claim batches of
messages under a time-bounded, renewable lease, process them, and delete
them. No two consumers hold an overlapping claim on the same message.

Quick start
-----------
    import asyncio
    from datetime import timedelta
    from cloudqueues import ClaimRenewer, Message, QueueingService

    async def main():
        async with QueueingService.from_settings() as svc:
            await svc.create_queue("thumbnails")
            await svc.post_messages("thumbnails", Message(body={"image": "cat.png"}))

            claim = await svc.claim_messages(
                "thumbnails", limit=10, ttl=timedelta(minutes=5), grace=timedelta(minutes=1)
            )
            async with claim, ClaimRenewer(claim):
                for message in claim.messages:
                    print(message.body)
                    await svc.delete_message("thumbnails", message.id, claim)

    asyncio.run(main())

Claim lifecycle
---------------
  claim_messages()  → Claim(is_new=True); empty batch when nothing was claimable
  query_claim()     → Claim(is_new=False), state as seen by the server
  update_claim()    → new ttl; age and messages are not refreshed
  release_claim()   → messages go back to the queue; repeat calls are no-ops

Logging
-------
The library logs through loguru and is disabled by default:

    from loguru import logger
    logger.enable("cloudqueues")

Architecture
------------
Follows the Ports & Adapters pattern:
  domain/   — value types (QueueName, QueuedMessage, Claim) and errors
  ports/    — Protocol interfaces (identity, catalog, transport)
  core/     — endpoint resolver, request pipeline, cursor, service facade
  adapters/ — httpx transport, static and Keystone identity
"""
from __future__ import annotations

from loguru import logger

from cloudqueues.adapters.identity.keystone import KeystoneIdentity
from cloudqueues.adapters.identity.static import StaticIdentityProvider, StaticServiceCatalog
from cloudqueues.adapters.transport.httpx_transport import HttpxTransport
from cloudqueues.config import ClientSettings
from cloudqueues.core.cursor import next_marker
from cloudqueues.core.renewer import ClaimRenewer
from cloudqueues.core.service import QueueingService
from cloudqueues.domain.claim import Claim, ClaimState
from cloudqueues.domain.errors import (
    CloudQueuesError,
    ItemNotFoundError,
    MalformedResponseError,
    ResponseError,
    ServiceNotFoundError,
    TransportError,
)
from cloudqueues.domain.models import (
    ClaimId,
    CloudQueue,
    Endpoint,
    HomeDocument,
    IdentityToken,
    Link,
    Message,
    MessageId,
    QueuedMessage,
    QueuedMessageList,
    QueueName,
    QueueStatistics,
)
from cloudqueues.ports.catalog import ServiceCatalogPort
from cloudqueues.ports.identity import IdentityProviderPort
from cloudqueues.ports.transport import TransportPort, TransportResponse

logger.disable("cloudqueues")

__all__ = [
    # Domain models
    "ClaimId",
    "CloudQueue",
    "Endpoint",
    "HomeDocument",
    "IdentityToken",
    "Link",
    "Message",
    "MessageId",
    "QueueName",
    "QueueStatistics",
    "QueuedMessage",
    "QueuedMessageList",
    "Claim",
    "ClaimState",
    # Errors
    "CloudQueuesError",
    "ItemNotFoundError",
    "MalformedResponseError",
    "ResponseError",
    "ServiceNotFoundError",
    "TransportError",
    # Ports (for typing custom adapters)
    "IdentityProviderPort",
    "ServiceCatalogPort",
    "TransportPort",
    "TransportResponse",
    # High-level API
    "QueueingService",
    "ClaimRenewer",
    "ClientSettings",
    "next_marker",
    # Built-in adapters
    "HttpxTransport",
    "KeystoneIdentity",
    "StaticIdentityProvider",
    "StaticServiceCatalog",
]
