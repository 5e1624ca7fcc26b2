"""Service catalog port — finds the queues endpoint for a region."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cloudqueues.domain.models import Endpoint


@runtime_checkable
class ServiceCatalogPort(Protocol):
    async def find_endpoint(
        self,
        service_type: str,
        service_name: str | None,
        region: str | None,
    ) -> Endpoint | None:
        """
        Return the endpoint for service_type in region, or None.

        When several services share the type, the one called service_name
        is preferred.
        """
        ...
