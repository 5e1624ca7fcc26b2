"""
Domain models for cloudqueues — backed by Pydantic v2.

Pydantic handles:
  - JSON deserialization of server responses (via codec.py)
  - int-seconds ↔ timedelta conversion for ages and time-to-live values
  - identifier validation

Identifiers (QueueName, MessageId, ClaimId) are frozen value objects that
compare and hash by value. They accept a positional value, and a bare
string wherever a model field expects one.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Any, TypeVar
from urllib.parse import urlsplit

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

M = TypeVar("M", bound=BaseModel)

_QUEUE_NAME_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")

# Marconi v1 message TTL bounds
MIN_MESSAGE_TTL = timedelta(seconds=60)
MAX_MESSAGE_TTL = timedelta(days=14)


def _last_segment(href: str) -> str:
    """Final path segment of a (possibly relative) URL, ignoring the query."""
    return urlsplit(href).path.rstrip("/").rsplit("/", 1)[-1]


# ---------------------------------------------------------------------- #
# Identifiers                                                             #
# ---------------------------------------------------------------------- #


class _Identifier(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str

    def __init__(self, value: str | None = None, /, **data: Any) -> None:
        if value is not None:
            data["value"] = value
        super().__init__(**data)

    @model_validator(mode="before")
    @classmethod
    def _from_str(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": data}
        return data

    @field_validator("value")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError(f"{cls.__name__} cannot be empty")
        return v

    def __str__(self) -> str:
        return self.value


class QueueName(_Identifier):
    """Name of a queue: 1–64 ASCII letters, digits, underscores or hyphens."""

    @field_validator("value")
    @classmethod
    def _check_syntax(cls, v: str) -> str:
        if not _QUEUE_NAME_RE.fullmatch(v):
            raise ValueError(
                f"invalid queue name {v!r}: expected 1-64 characters of [A-Za-z0-9_-]"
            )
        return v


class MessageId(_Identifier):
    """Server-assigned identifier of a message, scoped to its queue."""


class ClaimId(_Identifier):
    """Server-assigned identifier of a claim, scoped to its queue."""


# ---------------------------------------------------------------------- #
# Messages                                                                #
# ---------------------------------------------------------------------- #


class Message(BaseModel):
    """
    A message to post.

    body — any JSON-serialisable value, or a pydantic model
    ttl  — lifetime of the message on the server (60 s to 14 days)
    """

    model_config = ConfigDict(frozen=True)

    body: Any
    ttl: timedelta = timedelta(days=14)

    @field_validator("ttl")
    @classmethod
    def _check_ttl(cls, v: timedelta) -> timedelta:
        if not MIN_MESSAGE_TTL <= v <= MAX_MESSAGE_TTL:
            raise ValueError(
                f"ttl must be between {MIN_MESSAGE_TTL} and {MAX_MESSAGE_TTL}, got {v}"
            )
        return v

    @field_serializer("ttl")
    def _ttl_seconds(self, v: timedelta) -> int:
        return int(v.total_seconds())

    @field_serializer("body")
    def _dump_body(self, v: Any) -> Any:
        if isinstance(v, BaseModel):
            return v.model_dump(mode="json")
        return v


class Link(BaseModel):
    """A hypermedia link as returned in paged responses."""

    model_config = ConfigDict(frozen=True)

    href: str
    rel: str


class QueuedMessage(BaseModel):
    """
    Server view of a message.

    href — resource path of the message (its id is the last segment)
    age  — time since the message was posted
    ttl  — lifetime the message was posted with
    body — raw JSON body; use body_as() for typed access

    Unknown fields sent by the server are kept as extra attributes.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    href: str
    age: timedelta = timedelta(0)
    ttl: timedelta = timedelta(0)
    body: Any = None

    @property
    def id(self) -> MessageId:
        return MessageId(_last_segment(self.href))

    def body_as(self, model: type[M]) -> M:
        """Validate the body against a pydantic model."""
        return model.model_validate(self.body)


class QueuedMessageList(BaseModel):
    """
    One page of messages plus the links used to request the next page.

    QueuedMessageList.empty() is the shared sentinel for "no messages".
    """

    model_config = ConfigDict(frozen=True)

    messages: tuple[QueuedMessage, ...] = ()
    links: tuple[Link, ...] = ()

    @classmethod
    def empty(cls) -> QueuedMessageList:
        return _EMPTY_PAGE

    @property
    def is_empty(self) -> bool:
        return not self.messages

    def link(self, rel: str) -> Link | None:
        """First link with the given relation, or None."""
        return next((link for link in self.links if link.rel == rel), None)


_EMPTY_PAGE = QueuedMessageList()


class PostedMessages(BaseModel):
    """Wire shape of the 201 response to POST /queues/{queue_name}/messages."""

    model_config = ConfigDict(frozen=True)

    partial: bool = False
    resources: tuple[str, ...] = ()

    @property
    def ids(self) -> tuple[MessageId, ...]:
        return tuple(MessageId(_last_segment(href)) for href in self.resources)


# ---------------------------------------------------------------------- #
# Queues and service documents                                            #
# ---------------------------------------------------------------------- #


class CloudQueue(BaseModel):
    """A queue as listed by GET /queues."""

    model_config = ConfigDict(frozen=True, extra="allow")

    name: QueueName
    href: str
    metadata: dict[str, Any] | None = None


class QueueList(BaseModel):
    """Wire shape of GET /queues."""

    model_config = ConfigDict(frozen=True)

    queues: tuple[CloudQueue, ...] = ()
    links: tuple[Link, ...] = ()


class MessageAge(BaseModel):
    """Oldest/newest message summary inside queue statistics."""

    model_config = ConfigDict(frozen=True)

    href: str
    age: timedelta
    created: datetime


class MessageStatistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    claimed: int = 0
    free: int = 0
    total: int = 0
    oldest: MessageAge | None = None
    newest: MessageAge | None = None


class QueueStatistics(BaseModel):
    """Wire shape of GET /queues/{queue_name}/stats."""

    model_config = ConfigDict(frozen=True)

    messages: MessageStatistics


class HomeDocument(BaseModel):
    """JSON-Home document describing the service's resources."""

    model_config = ConfigDict(frozen=True, extra="allow")

    resources: dict[str, Any] = Field(default_factory=dict)


class ClaimDocument(BaseModel):
    """Wire shape of GET /queues/{queue_name}/claims/{claim_id}."""

    model_config = ConfigDict(frozen=True, extra="allow")

    age: timedelta
    ttl: timedelta
    messages: tuple[QueuedMessage, ...] = ()


# ---------------------------------------------------------------------- #
# Collaborator values                                                     #
# ---------------------------------------------------------------------- #


class Endpoint(BaseModel):
    """A catalog entry for the queues service in one region."""

    model_config = ConfigDict(frozen=True)

    public_url: str
    internal_url: str | None = None
    region: str | None = None


class IdentityToken(BaseModel):
    """An authentication token sent as X-Auth-Token."""

    model_config = ConfigDict(frozen=True)

    id: str
    expires: datetime | None = None
