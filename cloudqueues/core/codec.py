"""
Codec — serialize request bodies and deserialize response bodies with Pydantic v2.

Pydantic handles the full wire format:
  - timedelta fields are sent as integer seconds (Message.ttl serializer)
  - pydantic model bodies are dumped in JSON mode
  - response bodies are validated straight from bytes (validate_json)

Wire examples
-------------
POST /queues/demo/messages
  [{"ttl": 300, "body": {"event": "BackupStarted"}}]

POST /queues/demo/claims?limit=5
  {"ttl": 300, "grace": 60}

201 response
  [{"href": "/v1/queues/demo/messages/51db6f78c508f17ddc924357?claim_id=...",
    "ttl": 300, "age": 12, "body": {...}}]
"""
from __future__ import annotations

import functools
from typing import Any, TypeVar

from pydantic import TypeAdapter

T = TypeVar("T")

_ANY: TypeAdapter[Any] = TypeAdapter(Any)


@functools.lru_cache(maxsize=None)
def _adapter(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


def encode(value: Any) -> bytes:
    """Serialize a request body (models, lists of models, plain JSON) to UTF-8 JSON."""
    return _ANY.dump_json(value)


def decode(data: bytes, target: type[T]) -> T:
    """Deserialize UTF-8 JSON bytes into target (a model or a typing form)."""
    return _adapter(target).validate_json(data)
