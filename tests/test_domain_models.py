from datetime import timedelta

import pytest
from pydantic import BaseModel, ValidationError

from cloudqueues.domain.models import (
    ClaimDocument,
    ClaimId,
    CloudQueue,
    Link,
    Message,
    MessageId,
    PostedMessages,
    QueuedMessage,
    QueuedMessageList,
    QueueName,
    QueueStatistics,
)

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


def test_queue_name_positional_value():
    name = QueueName("thumbnails")
    assert name.value == "thumbnails"
    assert str(name) == "thumbnails"


def test_queue_name_equality_by_value():
    assert QueueName("a") == QueueName("a")
    assert QueueName("a") != QueueName("b")
    assert hash(QueueName("a")) == hash(QueueName("a"))


def test_identifiers_of_different_kinds_are_not_equal():
    assert MessageId("abc") != ClaimId("abc")


def test_queue_name_is_frozen():
    name = QueueName("a")
    with pytest.raises(ValidationError):
        name.value = "b"  # type: ignore[misc]


@pytest.mark.parametrize("bad", ["", "   ", "has space", "x" * 65, "ünïcode", "a/b"])
def test_queue_name_rejects_invalid(bad: str):
    with pytest.raises(ValueError):
        QueueName(bad)


def test_queue_name_accepts_hyphen_and_underscore():
    assert QueueName("my_queue-1").value == "my_queue-1"


def test_message_id_rejects_empty():
    with pytest.raises(ValueError):
        MessageId("")


def test_queue_name_validated_from_bare_string_in_model():
    queue = CloudQueue.model_validate({"name": "demo", "href": "/v1/queues/demo"})
    assert queue.name == QueueName("demo")


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


class _Thumbnail(BaseModel):
    image: str
    width: int


def test_message_default_ttl_is_fourteen_days():
    assert Message(body={}).ttl == timedelta(days=14)


def test_message_ttl_serialized_as_seconds():
    data = Message(body={"a": 1}, ttl=timedelta(minutes=5)).model_dump(mode="json")
    assert data == {"body": {"a": 1}, "ttl": 300}


def test_message_typed_body_serialized_as_json_object():
    body = _Thumbnail(image="cat.png", width=64)
    data = Message(body=body, ttl=timedelta(seconds=60)).model_dump(mode="json")
    assert data["body"] == {"image": "cat.png", "width": 64}


@pytest.mark.parametrize("ttl", [timedelta(seconds=59), timedelta(days=15)])
def test_message_ttl_out_of_bounds(ttl: timedelta):
    with pytest.raises(ValueError):
        Message(body="x", ttl=ttl)


# ---------------------------------------------------------------------------
# QueuedMessage
# ---------------------------------------------------------------------------


def test_queued_message_parses_seconds():
    msg = QueuedMessage.model_validate(
        {"href": "/v1/queues/demo/messages/51db6f78c508f17ddc924357", "age": 12, "ttl": 300, "body": {}}
    )
    assert msg.age == timedelta(seconds=12)
    assert msg.ttl == timedelta(seconds=300)


def test_queued_message_id_from_href():
    msg = QueuedMessage(href="/v1/queues/demo/messages/51db6f78c508f17ddc924357?claim_id=abc")
    assert msg.id == MessageId("51db6f78c508f17ddc924357")


def test_queued_message_body_as_model():
    msg = QueuedMessage(href="/m/1", body={"image": "cat.png", "width": 64})
    thumb = msg.body_as(_Thumbnail)
    assert thumb == _Thumbnail(image="cat.png", width=64)


def test_queued_message_keeps_extra_fields():
    msg = QueuedMessage.model_validate({"href": "/m/1", "claim_count": 2})
    assert msg.model_extra == {"claim_count": 2}


# ---------------------------------------------------------------------------
# QueuedMessageList
# ---------------------------------------------------------------------------


def test_empty_is_a_shared_sentinel():
    assert QueuedMessageList.empty() is QueuedMessageList.empty()
    assert QueuedMessageList.empty().is_empty
    assert QueuedMessageList.empty().links == ()


def test_link_lookup_by_rel():
    page = QueuedMessageList(
        links=(Link(rel="self", href="/a"), Link(rel="next", href="/b")),
    )
    assert page.link("next") == Link(rel="next", href="/b")
    assert page.link("prev") is None


def test_page_with_messages_is_not_empty():
    page = QueuedMessageList(messages=(QueuedMessage(href="/m/1"),))
    assert not page.is_empty


# ---------------------------------------------------------------------------
# Wire documents
# ---------------------------------------------------------------------------


def test_claim_document_parses_age_and_ttl():
    doc = ClaimDocument.model_validate(
        {"age": 19, "ttl": 30, "messages": [{"href": "/m/1", "ttl": 60, "age": 3, "body": 1}]}
    )
    assert doc.age == timedelta(seconds=19)
    assert doc.ttl == timedelta(seconds=30)
    assert len(doc.messages) == 1


def test_posted_messages_ids():
    posted = PostedMessages.model_validate(
        {
            "partial": False,
            "resources": [
                "/v1/queues/demo/messages/50b68a50d6f5b8c8a7c62b01",
                "/v1/queues/demo/messages/50b68a50d6f5b8c8a7c62b02",
            ],
        }
    )
    assert posted.ids == (
        MessageId("50b68a50d6f5b8c8a7c62b01"),
        MessageId("50b68a50d6f5b8c8a7c62b02"),
    )


def test_queue_statistics_optional_oldest_newest():
    stats = QueueStatistics.model_validate(
        {"messages": {"claimed": 1, "free": 2, "total": 3}}
    )
    assert stats.messages.total == 3
    assert stats.messages.oldest is None


def test_queue_statistics_with_oldest():
    stats = QueueStatistics.model_validate(
        {
            "messages": {
                "claimed": 0,
                "free": 1,
                "total": 1,
                "oldest": {
                    "href": "/v1/queues/demo/messages/1",
                    "age": 10,
                    "created": "2013-08-12T20:44:55Z",
                },
            }
        }
    )
    assert stats.messages.oldest is not None
    assert stats.messages.oldest.age == timedelta(seconds=10)
