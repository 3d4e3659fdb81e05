"""Turn one feed item into webhook calls.

An item is relayed as a thread: its text is segmented, each segment becomes
one OutboundPayload, and the payloads are sent strictly in order. Only the
first segment carries the item's media and goes to the with-media channel;
every other segment goes to the default channel.

Failure isolation is per item: the first failed send stops the remaining
segments of that item (a thread with a hole in it is worse than a short
one), and the failure is returned in the DispatchResult rather than raised.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from content import html_to_text
from errors import DispatchError
from models.item import FeedItem
from models.outbound import Channel, OutboundPayload, Segment
from notifications import SendFunc
from segmenter import Weigher, segment, weighted_length

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of dispatching one item.

    Attributes:
        item: The dispatched item
        total: Number of payloads built
        sent: Number of payloads delivered
        error: Failure message, None on success
    """

    item: FeedItem
    total: int = 0
    sent: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_segments(item: FeedItem, texts: Sequence[str]) -> list[Segment]:
    """Wrap segment texts, trimming whitespace and dropping blank ones.

    The first remaining segment is flagged as carrying the media when the
    item has a media URL. An item with media but no text gets one empty
    segment.
    """
    segments: list[Segment] = []
    for text in texts:
        text = text.strip()
        if not text:
            continue
        segments.append(Segment(text=text, has_media=not segments and item.media_url is not None))
    # Media-only posts still go out, as a single captionless segment
    if not segments and item.media_url:
        segments.append(Segment(text="", has_media=True))
    return segments


def segment_item(
    item: FeedItem,
    max_weighted_length: int,
    separator: str,
    weigh: Weigher = weighted_length,
) -> list[Segment]:
    """Convert an item's content to text and split it into segments."""
    text = html_to_text(item.raw_content)
    return build_segments(item, segment(text, max_weighted_length, separator, weigh))


def build_payloads(item: FeedItem, segments: Sequence[Segment]) -> list[OutboundPayload]:
    """Build one payload per segment, routing media to the with-media channel."""
    payloads = []
    for seg in segments:
        if seg.has_media and item.media_url:
            payloads.append(OutboundPayload(
                text=seg.text,
                media_url=item.media_url,
                permalink=item.permalink,
                channel=Channel.WITH_MEDIA,
            ))
        else:
            payloads.append(OutboundPayload(
                text=seg.text,
                permalink=item.permalink,
                channel=Channel.DEFAULT,
            ))
    return payloads


async def dispatch(
    item: FeedItem,
    segments: Sequence[Segment],
    send: SendFunc,
) -> DispatchResult:
    """Send an item's segments in order.

    Args:
        item: Item being relayed
        segments: Segments from segment_item
        send: Coroutine function delivering one payload, raising DispatchError

    Returns:
        DispatchResult; never raises DispatchError
    """
    payloads = build_payloads(item, segments)
    result = DispatchResult(item=item, total=len(payloads))

    if not payloads:
        logger.warning("Item has no text to relay | link=%s", item.permalink)
        return result

    for index, payload in enumerate(payloads, 1):
        try:
            await send(payload)
        except DispatchError as e:
            result.error = str(e)
            logger.error(
                "Dispatch failed | link=%s segment=%d/%d error=%s",
                item.permalink, index, len(payloads), e,
            )
            return result
        result.sent += 1

    logger.info(
        "Item relayed | link=%s segments=%d media=%s",
        item.permalink, len(payloads), bool(item.media_url),
    )
    return result
