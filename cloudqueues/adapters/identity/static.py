"""
Static identity and catalog adapters.

For services reached with a pre-issued token and a known endpoint (local
Marconi, tests, examples). No I/O.
"""
from __future__ import annotations

import dataclasses

from cloudqueues.domain.models import Endpoint, IdentityToken


@dataclasses.dataclass
class StaticIdentityProvider:
    """Always returns the same token."""

    token: str

    async def get_token(self) -> IdentityToken:
        return IdentityToken(id=self.token)


@dataclasses.dataclass
class StaticServiceCatalog:
    """
    A fixed list of queues endpoints.

    find_endpoint() returns the first endpoint whose region matches, or the
    first endpoint when no region is requested. service_type and
    service_name are ignored.
    """

    endpoints: list[Endpoint]

    @classmethod
    def for_url(cls, url: str, region: str | None = None) -> StaticServiceCatalog:
        return cls([Endpoint(public_url=url, internal_url=url, region=region)])

    async def find_endpoint(
        self,
        service_type: str,
        service_name: str | None,
        region: str | None,
    ) -> Endpoint | None:
        for endpoint in self.endpoints:
            if region is None or endpoint.region is None or endpoint.region == region:
                return endpoint
        return None
