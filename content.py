"""Convert feed entry HTML into plain text for segmentation.

Feed descriptions (Mastodon in particular) are small HTML fragments:
paragraphs, line breaks, links, hashtags and mentions. The relayed text
keeps the paragraph structure and drops all markup:

    <p>one<br />two</p><p>three</p>  ->  "one\\ntwo\\n\\nthree"

Mastodon splits long link text into visible and "invisible" spans; all of
them are kept, so links come out in full.
"""

import html
import logging
import re
import unicodedata
from html.parser import HTMLParser
from io import StringIO

logger = logging.getLogger(__name__)

_INLINE_SPACE = re.compile(r"[ \t\r\f\v]+")
_BLANK_LINES = re.compile(r"\n{3,}")


class _HTMLTextExtractor(HTMLParser):
    """Extract text from HTML, turning block structure into newlines.

    Usage:
        >>> parser = _HTMLTextExtractor()
        >>> parser.feed("<p>Hello<br>world</p><script>x</script>")
        >>> parser.get_text()
        'Hello\\nworld\\n\\n'
    """

    # Tags whose content should be completely ignored
    SKIP_TAGS = frozenset({"script", "style", "head", "meta", "link"})
    # Tags that end a paragraph
    BLOCK_TAGS = frozenset({"p", "div", "blockquote", "li", "h1", "h2", "h3", "h4", "h5", "h6", "pre"})

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self._buffer = StringIO()
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self.SKIP_TAGS:
            self._skip_depth += 1
        elif tag == "br":
            self._buffer.write("\n")

    def handle_startendtag(self, tag, attrs):
        if tag == "br":
            self._buffer.write("\n")

    def handle_endtag(self, tag):
        if tag in self.SKIP_TAGS and self._skip_depth > 0:
            self._skip_depth -= 1
        elif tag in self.BLOCK_TAGS:
            self._buffer.write("\n\n")

    def handle_data(self, data):
        if self._skip_depth == 0:
            # Source newlines are formatting, not content
            self._buffer.write(data.replace("\n", " "))

    def get_text(self) -> str:
        """Return accumulated text content."""
        return self._buffer.getvalue()


def html_to_text(markup: str) -> str:
    """Convert an HTML fragment to plain text.

    Args:
        markup: HTML (or already plain) text from a feed entry

    Returns:
        NFC-normalized text with paragraphs separated by blank lines

    Example:
        >>> html_to_text("<p>Hi &amp; bye</p><p>Next</p>")
        'Hi & bye\\n\\nNext'
    """
    if not markup:
        return ""

    parser = _HTMLTextExtractor()
    try:
        parser.feed(markup)
        parser.close()
        text = parser.get_text()
    except Exception as e:
        # Fallback: strip tags with regex
        logger.debug("HTML parse failed, stripping tags | error=%s", e)
        text = html.unescape(re.sub(r"<[^>]+>", " ", markup))

    lines = [_INLINE_SPACE.sub(" ", line).strip() for line in text.split("\n")]
    text = _BLANK_LINES.sub("\n\n", "\n".join(lines))
    return unicodedata.normalize("NFC", text.strip())
