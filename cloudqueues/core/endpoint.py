"""
EndpointResolver — finds and caches the queues service base URL.

The first resolve() asks the service catalog for the configured service
type and region and picks the public or internal URL. The result is kept on
the resolver for its lifetime; later calls never touch the catalog.

Two coroutines racing through the first resolve() may both query the
catalog. They store equal values, so no lock is taken.
"""
from __future__ import annotations

import dataclasses

from loguru import logger

from cloudqueues.domain.errors import ServiceNotFoundError
from cloudqueues.ports.catalog import ServiceCatalogPort

DEFAULT_SERVICE_TYPE = "rax:queues"
DEFAULT_SERVICE_NAME = "cloudQueues"


@dataclasses.dataclass
class EndpointResolver:
    """
    Parameters
    ----------
    catalog      : any ServiceCatalogPort implementation
    region       : catalog region (None → the catalog's default)
    internal_url : use the internal (service-net) URL instead of the public one
    service_type : catalog type of the queues service
    service_name : preferred catalog name when several services share the type
    """

    catalog: ServiceCatalogPort
    region: str | None = None
    internal_url: bool = False
    service_type: str = DEFAULT_SERVICE_TYPE
    service_name: str | None = DEFAULT_SERVICE_NAME

    _base_url: str | None = dataclasses.field(default=None, init=False, repr=False)

    @property
    def cached(self) -> str | None:
        return self._base_url

    async def resolve(self) -> str:
        """Return the base URL (no trailing slash). Raises ServiceNotFoundError."""
        if self._base_url is not None:
            return self._base_url

        endpoint = await self.catalog.find_endpoint(
            self.service_type, self.service_name, self.region
        )
        if endpoint is None:
            raise ServiceNotFoundError(self.service_type, self.region)

        url = endpoint.internal_url if self.internal_url else endpoint.public_url
        if not url:
            raise ServiceNotFoundError(self.service_type, self.region)

        self._base_url = url.rstrip("/")
        logger.info(
            "resolved {} endpoint in region {}: {}",
            self.service_type,
            endpoint.region or self.region,
            self._base_url,
        )
        return self._base_url
