import pytest

from cloudqueues.core.endpoint import DEFAULT_SERVICE_NAME, DEFAULT_SERVICE_TYPE, EndpointResolver
from cloudqueues.domain.errors import ServiceNotFoundError
from cloudqueues.domain.models import Endpoint


class _CountingCatalog:
    def __init__(self, *endpoints: Endpoint) -> None:
        self.endpoints = endpoints
        self.calls: list[tuple[str, str | None, str | None]] = []

    async def find_endpoint(
        self, service_type: str, service_name: str | None, region: str | None
    ) -> Endpoint | None:
        self.calls.append((service_type, service_name, region))
        for endpoint in self.endpoints:
            if region is None or endpoint.region == region:
                return endpoint
        return None


_ORD = Endpoint(
    public_url="https://ord.queues.example.com/v1/123/",
    internal_url="https://snet-ord.queues.example.com/v1/123",
    region="ORD",
)
_DFW = Endpoint(public_url="https://dfw.queues.example.com/v1/123", region="DFW")


async def test_resolves_public_url_without_trailing_slash():
    resolver = EndpointResolver(_CountingCatalog(_ORD), region="ORD")
    assert await resolver.resolve() == "https://ord.queues.example.com/v1/123"


async def test_resolves_internal_url():
    resolver = EndpointResolver(_CountingCatalog(_ORD), region="ORD", internal_url=True)
    assert await resolver.resolve() == "https://snet-ord.queues.example.com/v1/123"


async def test_selects_region():
    resolver = EndpointResolver(_CountingCatalog(_ORD, _DFW), region="DFW")
    assert await resolver.resolve() == "https://dfw.queues.example.com/v1/123"


async def test_passes_service_type_and_name():
    catalog = _CountingCatalog(_ORD)
    await EndpointResolver(catalog, region="ORD").resolve()
    assert catalog.calls == [(DEFAULT_SERVICE_TYPE, DEFAULT_SERVICE_NAME, "ORD")]


async def test_result_is_cached():
    catalog = _CountingCatalog(_ORD)
    resolver = EndpointResolver(catalog)
    assert resolver.cached is None

    first = await resolver.resolve()
    second = await resolver.resolve()

    assert first == second == resolver.cached
    assert len(catalog.calls) == 1


async def test_unknown_region_raises():
    resolver = EndpointResolver(_CountingCatalog(_ORD), region="SYD")
    with pytest.raises(ServiceNotFoundError) as exc_info:
        await resolver.resolve()
    assert exc_info.value.region == "SYD"
    assert resolver.cached is None


async def test_missing_internal_url_raises():
    resolver = EndpointResolver(_CountingCatalog(_DFW), region="DFW", internal_url=True)
    with pytest.raises(ServiceNotFoundError):
        await resolver.resolve()
