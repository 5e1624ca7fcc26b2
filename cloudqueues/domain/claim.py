"""
Claim — the client's cached view of a lease over a batch of messages.

Lifecycle
---------
    claim_messages() ──> ACTIVE ──renew()──> RENEWING ──> ACTIVE
                           │
                           └──release()──> RELEASING ──> RELEASED

A Claim handle only exists once the server has answered claim_messages()
or query_claim(), so every handle starts ACTIVE. Messages that nobody has
claimed yet have no handle at all.

A claim can also expire on the server (ttl + grace elapsed). The client is
never told; the next refresh() or renew() fails with ItemNotFoundError.

The location (absolute URL of the claim resource) is fixed for the lifetime
of the Claim; renew and release always target it. The service is the source
of truth: age and messages only change locally through refresh().

A single Claim is not safe for concurrent renew/release calls.
"""

from __future__ import annotations

import dataclasses
from datetime import timedelta
from enum import Enum
from types import TracebackType
from typing import Protocol

from cloudqueues.domain.models import (
    ClaimId,
    QueuedMessage,
    QueueName,
    _last_segment,
)


class ClaimState(str, Enum):
    """Locally observable lifecycle states of a claim handle."""

    ACTIVE = "active"
    RENEWING = "renewing"
    RELEASING = "releasing"
    RELEASED = "released"


class _ClaimOperations(Protocol):
    """Structural Protocol — the service calls a Claim delegates to."""

    async def query_claim(self, queue_name: QueueName, claim: Claim) -> Claim: ...

    async def update_claim(
        self, queue_name: QueueName, claim: Claim, ttl: timedelta
    ) -> None: ...

    async def release_claim(self, queue_name: QueueName, claim: Claim) -> None: ...


@dataclasses.dataclass(eq=False)
class Claim:
    """
    A lease over zero or more messages.

    service    — the QueueingService that created the claim
    queue_name — queue the claimed messages belong to
    location   — absolute URL of the claim resource (None only if the server
                 omitted the header on an empty claim)
    ttl        — time-to-live last requested or reported
    age        — age at acquisition (always zero) or at the last query
    is_new     — True when produced by claim_messages(), False after query
    messages   — the claimed batch; empty when nothing was claimable
    """

    service: _ClaimOperations = dataclasses.field(repr=False)
    queue_name: QueueName
    location: str | None
    ttl: timedelta
    age: timedelta = timedelta(0)
    is_new: bool = True
    messages: tuple[QueuedMessage, ...] = ()
    state: ClaimState = ClaimState.ACTIVE

    def __post_init__(self) -> None:
        if self.ttl <= timedelta(0):
            raise ValueError(f"claim ttl must be positive, got {self.ttl}")
        if self.age < timedelta(0):
            raise ValueError(f"claim age cannot be negative, got {self.age}")

    @property
    def id(self) -> ClaimId | None:
        if self.location is None:
            return None
        return ClaimId(_last_segment(self.location))

    # ------------------------------------------------------------------ #
    # Service round-trips                                                  #
    # ------------------------------------------------------------------ #

    async def refresh(self) -> None:
        """Re-query the claim and update age, ttl and messages in place."""
        fresh = await self.service.query_claim(self.queue_name, self)
        self.ttl = fresh.ttl
        self.age = fresh.age
        self.messages = fresh.messages
        self.is_new = False

    async def renew(self, ttl: timedelta) -> None:
        """Extend the lease. Age and messages are not refreshed."""
        previous = self.state
        self.state = ClaimState.RENEWING
        try:
            await self.service.update_claim(self.queue_name, self, ttl)
        except BaseException:
            self.state = previous
            raise
        self.ttl = ttl
        self.state = ClaimState.ACTIVE

    async def release(self) -> None:
        """Give the messages back to the queue. Safe to call more than once."""
        if self.state is ClaimState.RELEASED:
            return
        previous = self.state
        self.state = ClaimState.RELEASING
        try:
            await self.service.release_claim(self.queue_name, self)
        except BaseException:
            self.state = previous
            raise
        self.state = ClaimState.RELEASED

    async def __aenter__(self) -> Claim:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.release()
