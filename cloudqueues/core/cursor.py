"""
Pagination cursor — derives the marker for the next page of messages.

The server returns paging links with each page:

    {"links": [{"rel": "next",
                "href": "/v1/queues/demo/messages?marker=6244-244224-783&limit=10"}],
     "messages": [...]}

The marker is recovered by matching the "next" href against the same
template used to build list requests, so the value echoed back is exactly
what the server put there. No "next" link means there are no more pages.
"""
from __future__ import annotations

from cloudqueues.core.uritemplate import UriTemplate
from cloudqueues.domain.errors import CloudQueuesError
from cloudqueues.domain.models import QueuedMessageList

LIST_MESSAGES = UriTemplate(
    "/queues/{queue_name}/messages"
    "?marker={marker}&limit={limit}&echo={echo}&include_claimed={include_claimed}"
)


def next_marker(page: QueuedMessageList) -> str | None:
    """
    Marker for the page after `page`, or None when there is none.

    Raises CloudQueuesError if a "next" link exists but carries no marker.
    """
    link = page.link("next")
    if link is None:
        return None

    bound = LIST_MESSAGES.match(link.href)
    if bound is None or "marker" not in bound:
        raise CloudQueuesError(f"cannot derive a marker from next link {link.href!r}")
    return bound["marker"]
