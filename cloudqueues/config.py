"""
ClientSettings — environment-driven configuration (pydantic-settings).

Every field can be set through a CLOUDQUEUES_* environment variable or a
.env file, e.g. CLOUDQUEUES_REGION=ORD.

Two ways to authenticate:
  - token + endpoint_url  → static token against a fixed endpoint
  - username + api_key    → Keystone v2 tokens call (catalog lookup)
"""
from __future__ import annotations

import uuid

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cloudqueues.adapters.identity.keystone import RACKSPACE_IDENTITY_URL, KeystoneIdentity
from cloudqueues.adapters.identity.static import StaticIdentityProvider, StaticServiceCatalog
from cloudqueues.adapters.transport.httpx_transport import HttpxTransport
from cloudqueues.core.endpoint import DEFAULT_SERVICE_NAME, DEFAULT_SERVICE_TYPE
from cloudqueues.core.pipeline import DEFAULT_USER_AGENT
from cloudqueues.core.service import QueueingService
from cloudqueues.ports.catalog import ServiceCatalogPort
from cloudqueues.ports.identity import IdentityProviderPort


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CLOUDQUEUES_", env_file=".env", extra="ignore"
    )

    region: str | None = None
    internal_url: bool = False
    client_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    service_type: str = DEFAULT_SERVICE_TYPE
    service_name: str | None = DEFAULT_SERVICE_NAME
    user_agent: str = DEFAULT_USER_AGENT

    identity_url: str = RACKSPACE_IDENTITY_URL
    username: str | None = None
    api_key: str | None = None
    password: str | None = None

    token: str | None = None
    endpoint_url: str | None = None

    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 30.0

    @model_validator(mode="after")
    def _check_credentials(self) -> ClientSettings:
        static = self.token is not None and self.endpoint_url is not None
        keystone = self.username is not None and (self.api_key or self.password)
        if not static and not keystone:
            raise ValueError(
                "configure either token and endpoint_url, "
                "or username with api_key or password"
            )
        return self


def build_service(settings: ClientSettings | None = None) -> QueueingService:
    """Wire a QueueingService from settings (read from the environment if omitted)."""
    settings = settings or ClientSettings()
    transport = HttpxTransport(
        connect_timeout=settings.connect_timeout_seconds,
        read_timeout=settings.read_timeout_seconds,
    )

    identity: IdentityProviderPort
    catalog: ServiceCatalogPort
    if settings.token is not None and settings.endpoint_url is not None:
        identity = StaticIdentityProvider(settings.token)
        catalog = StaticServiceCatalog.for_url(settings.endpoint_url, settings.region)
    elif settings.username is not None:
        keystone = KeystoneIdentity(
            username=settings.username,
            api_key=settings.api_key,
            password=settings.password,
            identity_url=settings.identity_url,
        )
        identity = catalog = keystone
    else:
        raise ValueError("settings carry neither a static token nor Keystone credentials")

    return QueueingService(
        identity=identity,
        catalog=catalog,
        transport=transport,
        region=settings.region,
        internal_url=settings.internal_url,
        client_id=settings.client_id,
        user_agent=settings.user_agent,
        service_type=settings.service_type,
        service_name=settings.service_name,
    )
