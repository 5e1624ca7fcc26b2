"""
ClaimRenewer — async context manager that keeps a claim alive.

A consumer whose processing may outlast the claim's ttl wraps the work in
ClaimRenewer; the lease is renewed every `interval` until the block exits.

Usage
-----
    claim = await svc.claim_messages(queue, ttl=timedelta(minutes=1))

    async with ClaimRenewer(claim, interval=timedelta(seconds=30)):
        for message in claim.messages:
            await handle(message)
            await svc.delete_message(queue, message.id, claim)

    await claim.release()

If the claim disappears on the server (expired or released elsewhere) the
renewer stops quietly. Any other failure is re-raised from __aexit__.

ClaimRenewer is typed against the structural Protocol _Renewable, so any
object with an async renew(ttl) method works.
"""
from __future__ import annotations

import asyncio
import dataclasses
from datetime import timedelta
from types import TracebackType
from typing import Protocol

from loguru import logger

from cloudqueues.domain.errors import ItemNotFoundError


class _Renewable(Protocol):
    """Structural Protocol — any object with async renew(ttl) and a ttl."""

    ttl: timedelta

    async def renew(self, ttl: timedelta) -> None: ...


@dataclasses.dataclass
class ClaimRenewer:
    """
    Renews a single claim periodically.

    Parameters
    ----------
    claim    : the Claim to keep alive
    interval : time between renewals (default: half the claim's ttl)
    ttl      : ttl requested on each renewal (default: the claim's ttl)
    """

    claim: _Renewable
    interval: timedelta | None = None
    ttl: timedelta | None = None

    _task: asyncio.Task[None] | None = dataclasses.field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.ttl is None:
            self.ttl = self.claim.ttl
        if self.interval is None:
            self.interval = self.ttl / 2
        if self.interval <= timedelta(0):
            raise ValueError(f"interval must be positive, got {self.interval}")

    async def __aenter__(self) -> ClaimRenewer:
        self._task = asyncio.create_task(
            self._renew(self.interval, self.ttl), name="cloudqueues-claim-renewer"
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _renew(self, interval: timedelta, ttl: timedelta) -> None:
        while True:
            await asyncio.sleep(interval.total_seconds())
            try:
                await self.claim.renew(ttl)
            except ItemNotFoundError:
                logger.warning("claim vanished on the server; renewals stopped")
                return
