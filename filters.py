"""Select the feed items that still need to be relayed.

The checkpoint is a high-water mark: the publication time (epoch ms) of the
newest item any previous run considered. An item is new when it was
published strictly after the checkpoint.

Ordering:
    Feeds list entries newest-first. Only the first `max_items` entries are
    considered, which bounds the work of one run but assumes the feed is
    actually ordered. Selected items are returned oldest-first, so an
    interrupted batch has delivered the oldest items and the checkpoint
    (committed only after the whole batch) never skips newer ones.

Excluded items:
    Items tagged with the exclusion tag are never relayed, but their
    publication time still advances the checkpoint so they are not looked
    at again.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence

from models.item import FeedItem

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_TAG = "nocrosspost"


@dataclass(frozen=True)
class Selection:
    """Result of select_new_items.

    Attributes:
        selected: New items to dispatch, oldest first
        excluded: New items skipped because of the exclusion tag
        new_checkpoint: Checkpoint to commit after dispatch
        considered: Number of feed items looked at
    """

    selected: list[FeedItem] = field(default_factory=list)
    excluded: list[FeedItem] = field(default_factory=list)
    new_checkpoint: int | None = None
    considered: int = 0


def is_new(item: FeedItem, last_checkpoint: int | None) -> bool:
    """True if the item was published after the checkpoint."""
    return last_checkpoint is None or item.published_at > last_checkpoint


def select_new_items(
    items: Sequence[FeedItem],
    last_checkpoint: int | None,
    max_items: int,
    exclude_tag: str = DEFAULT_EXCLUDE_TAG,
) -> Selection:
    """Pick new items from a newest-first feed and compute the next checkpoint.

    Args:
        items: Parsed feed items, newest first
        last_checkpoint: Stored checkpoint (epoch ms), None to take everything
        max_items: Maximum number of head items to consider
        exclude_tag: Case-insensitive tag that opts an item out of relaying

    Returns:
        Selection with items oldest-first and the new checkpoint

    Example:
        >>> sel = select_new_items([newer, older], None, 20)
        >>> [i.published_at for i in sel.selected]
        [50, 100]
    """
    considered = list(items[:max(max_items, 0)])

    selected: list[FeedItem] = []
    excluded: list[FeedItem] = []
    new_checkpoint = last_checkpoint

    for item in considered:
        if new_checkpoint is None or item.published_at > new_checkpoint:
            new_checkpoint = item.published_at

        if not is_new(item, last_checkpoint):
            continue
        if exclude_tag and item.has_tag(exclude_tag):
            logger.info("Item excluded by tag | tag=%s link=%s", exclude_tag, item.permalink)
            excluded.append(item)
            continue
        selected.append(item)

    selected.reverse()
    excluded.reverse()

    logger.debug(
        "Selection | considered=%d selected=%d excluded=%d checkpoint=%s->%s",
        len(considered), len(selected), len(excluded), last_checkpoint, new_checkpoint,
    )
    return Selection(
        selected=selected,
        excluded=excluded,
        new_checkpoint=new_checkpoint,
        considered=len(considered),
    )
