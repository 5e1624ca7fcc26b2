"""Identity port — supplies the token sent as X-Auth-Token."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cloudqueues.domain.models import IdentityToken


@runtime_checkable
class IdentityProviderPort(Protocol):
    """
    Returns a valid token for the configured identity.

    Implementations own caching and renewal of the token; the pipeline
    calls get_token() once per request.
    """

    async def get_token(self) -> IdentityToken: ...
