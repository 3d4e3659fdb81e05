"""Pydantic models for the feed relay.

FeedItem:
    One parsed feed entry (guid, permalink, publication time in epoch
    milliseconds, raw HTML content, optional media URL, lowercased tags).

Segment:
    One bounded chunk of an item's text, flagged when it carries the media.

OutboundPayload:
    One webhook call: text, optional media URL, permalink and target channel.

Channel:
    Logical webhook destinations (default / with_media).

Example:
    >>> from models import FeedItem, Channel
    >>> item = FeedItem(guid="1", permalink="https://...", published_at=0, raw_content="<p>hi</p>")
    >>> item.has_tag("NoCrossPost")
    False
"""

from models.item import FeedItem
from models.outbound import Channel, OutboundPayload, Segment

__all__ = [
    "FeedItem",
    "Segment",
    "OutboundPayload",
    "Channel",
]
