"""
KeystoneIdentity — identity provider and service catalog from a Keystone v2
(Rackspace Cloud Identity) tokens call.

One POST {identity_url}/tokens returns both the token and the service
catalog, so a single object implements IdentityProviderPort and
ServiceCatalogPort. The access document is cached until shortly before the
token expires. Concurrent refreshes may both hit the identity service; the
last one wins and both tokens are valid.
"""
from __future__ import annotations

import dataclasses
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cloudqueues.domain.errors import MalformedResponseError, ResponseError, TransportError
from cloudqueues.domain.models import Endpoint, IdentityToken

RACKSPACE_IDENTITY_URL = "https://identity.api.rackspacecloud.com/v2.0"

_EXPIRY_SKEW = timedelta(minutes=5)


class _CatalogEndpoint(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    region: str | None = None
    public_url: str = Field(alias="publicURL")
    internal_url: str | None = Field(default=None, alias="internalURL")


class _CatalogService(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    type: str
    endpoints: tuple[_CatalogEndpoint, ...] = ()


class _Access(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    token: IdentityToken
    service_catalog: tuple[_CatalogService, ...] = Field(
        default=(), alias="serviceCatalog"
    )


class _TokensResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access: _Access


@dataclasses.dataclass
class KeystoneIdentity:
    """
    Parameters
    ----------
    username     : account user name
    api_key      : Rackspace API key (used when set)
    password     : password (used when api_key is not set)
    identity_url : Keystone v2.0 base URL
    client       : httpx.AsyncClient — created lazily if omitted
    """

    username: str
    api_key: str | None = None
    password: str | None = None
    identity_url: str = RACKSPACE_IDENTITY_URL
    client: httpx.AsyncClient | None = None

    _access: _Access | None = dataclasses.field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.api_key and not self.password:
            raise ValueError("either api_key or password is required")

    def _credentials(self) -> dict[str, Any]:
        if self.api_key:
            return {
                "RAX-KSKEY:apiKeyCredentials": {
                    "username": self.username,
                    "apiKey": self.api_key,
                }
            }
        return {
            "passwordCredentials": {
                "username": self.username,
                "password": self.password,
            }
        }

    @staticmethod
    def _is_fresh(access: _Access) -> bool:
        expires = access.token.expires
        if expires is None:
            return True
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=UTC)
        return datetime.now(UTC) + _EXPIRY_SKEW < expires

    async def _authenticate(self) -> _Access:
        if self._access is not None and self._is_fresh(self._access):
            return self._access

        client = self.client or httpx.AsyncClient()
        url = self.identity_url.rstrip("/") + "/tokens"
        try:
            response = await client.post(url, json={"auth": self._credentials()})
        except httpx.HTTPError as exc:
            raise TransportError(f"POST {url} failed", exc) from exc
        finally:
            if self.client is None:
                await client.aclose()

        if response.status_code != 200:
            raise ResponseError(response.status_code, response.text, "POST", url)

        try:
            document = _TokensResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise MalformedResponseError(
                response.status_code, response.text, "POST", url, str(exc)
            ) from exc

        self._access = document.access
        logger.info("authenticated {} against {}", self.username, self.identity_url)
        return self._access

    async def get_token(self) -> IdentityToken:
        access = await self._authenticate()
        return access.token

    async def find_endpoint(
        self,
        service_type: str,
        service_name: str | None,
        region: str | None,
    ) -> Endpoint | None:
        access = await self._authenticate()
        services = [s for s in access.service_catalog if s.type == service_type]
        services.sort(key=lambda s: s.name != service_name)
        for service in services:
            for entry in service.endpoints:
                if region is None or entry.region is None or entry.region.lower() == region.lower():
                    return Endpoint(
                        public_url=entry.public_url,
                        internal_url=entry.internal_url,
                        region=entry.region,
                    )
        return None
