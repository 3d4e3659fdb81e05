"""Split post text into bounded-length segments.

A post longer than the downstream platform's limit is relayed as a thread of
several segments. Cut points come from two sources:

    1. An explicit separator written by the author (e.g. "===="). A
       separator within reach of the next cut always wins, and the text
       before it becomes one segment as-is, even if it is over the limit.
    2. The weighted length limit. Otherwise the longest prefix whose
       weighted length fits is taken.

The walk keeps a read cursor into the content rather than slicing off the
consumed prefix. Separators are consumed and never emitted; empty pieces
(adjacent or leading separators) are dropped.

Weighting:
    weighted_length implements the twitter-text v3 character weights:
    code points in the ranges below count 1, everything else counts 2
    (CJK, most emoji). URL shortening is not modeled.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

# (start, end) inclusive code point ranges that weigh one unit
LIGHT_RANGES = (
    (0, 4351),
    (8192, 8205),
    (8208, 8223),
    (8242, 8247),
)
DEFAULT_WEIGHT = 2

Weigher = Callable[[str], int]


def char_weight(ch: str) -> int:
    """Weight of a single character."""
    cp = ord(ch)
    for start, end in LIGHT_RANGES:
        if start <= cp <= end:
            return 1
    return DEFAULT_WEIGHT


def weighted_length(text: str) -> int:
    """Weighted length of text under the twitter-text v3 rules.

    Example:
        >>> weighted_length("hello")
        5
        >>> weighted_length("こんにちは")
        10
    """
    return sum(char_weight(ch) for ch in text)


def segment(
    content: str,
    max_weighted_length: int,
    separator: str,
    weigh: Weigher = weighted_length,
) -> list[str]:
    """Split content into ordered segments.

    Args:
        content: Plain text to split
        max_weighted_length: Limit for one segment, also the look-ahead
            window (in characters) for finding a separator
        separator: Author-controlled break marker, consumed at cut points
        weigh: Weighting function; must be non-decreasing in string length

    Returns:
        Segments in order; empty list for empty content

    Raises:
        ValueError: If max_weighted_length < 1 or separator is empty

    Example:
        >>> segment("AAA====BBB", 280, "====")
        ['AAA', 'BBB']
    """
    if max_weighted_length < 1:
        raise ValueError("max_weighted_length must be at least 1")
    if not separator:
        raise ValueError("separator must not be empty")

    segments: list[str] = []
    pos = 0
    n = len(content)
    sep_len = len(separator)

    while pos < n:
        window_end = min(pos + max_weighted_length, n)

        # A separator starting inside the window is a cut even if it ends past it
        cut = content.find(separator, pos, min(window_end + sep_len - 1, n))
        if cut != -1:
            piece = content[pos:cut]
            pos = cut + sep_len
        else:
            end = window_end
            # A single character always makes progress, whatever it weighs
            while end - pos > 1 and weigh(content[pos:end]) > max_weighted_length:
                end -= 1
            piece = content[pos:end]
            pos = end
            if content.startswith(separator, pos):
                pos += sep_len

        if piece:
            segments.append(piece)

    logger.debug("Segmented | chars=%d segments=%d", n, len(segments))
    return segments
