import dataclasses
import json
import uuid
from collections.abc import Mapping
from typing import Any

import httpx
import pytest

from cloudqueues.adapters.identity.static import StaticIdentityProvider, StaticServiceCatalog
from cloudqueues.core.service import QueueingService
from cloudqueues.ports.transport import TransportResponse

BASE_URL = "https://queues.example.com/v1/123456"
CLIENT_ID = uuid.UUID("3381af92-2b9e-11e3-b191-71861300734c")

# ---------------------------------------------------------------------------
# Transport stub
# ---------------------------------------------------------------------------


@dataclasses.dataclass
class SentRequest:
    method: str
    url: str
    headers: dict[str, str]
    content: bytes | None

    def json(self) -> Any:
        assert self.content is not None
        return json.loads(self.content)


class RecordingTransport:
    """TransportPort stub: replays scripted responses and records requests."""

    def __init__(self) -> None:
        self.requests: list[SentRequest] = []
        self.responses: list[TransportResponse] = []
        self.closed = False

    def reply(
        self,
        status: int,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        content = json.dumps(body).encode() if body is not None else b""
        self.responses.append(
            TransportResponse(status, httpx.Headers(dict(headers or {})), content)
        )

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        content: bytes | None = None,
    ) -> TransportResponse:
        self.requests.append(SentRequest(method, url, dict(headers), content))
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        return self.responses.pop(0)

    async def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> SentRequest:
        return self.requests[-1]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def service(transport: RecordingTransport) -> QueueingService:
    return QueueingService(
        identity=StaticIdentityProvider("secret-token"),
        catalog=StaticServiceCatalog.for_url(BASE_URL),
        transport=transport,
        client_id=CLIENT_ID,
    )


@pytest.fixture
def base_url() -> str:
    return BASE_URL
