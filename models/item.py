"""Feed item model.

Each FeedItem is one entry of the syndication feed, parsed once by
feeds.parse_feed and never mutated afterwards. Optional parts of an entry
(media attachment, categories) are explicit fields so the filter and the
dispatcher never have to probe the raw feed structure.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeedItem(BaseModel):
    """A single post from the feed.

    Attributes:
        guid: Stable entry identifier (falls back to the permalink)
        permalink: URL of the post
        published_at: Publication time as epoch milliseconds
        published: Publication date string as it appeared in the feed
        raw_content: Description/content, usually HTML
        media_url: URL of the first attached media file, if any
        tags: Category terms, lowercased

    Example:
        >>> item = FeedItem(
        ...     guid="https://mastodon.example/@me/1",
        ...     permalink="https://mastodon.example/@me/1",
        ...     published_at=1700000000000,
        ...     raw_content="<p>Hello</p>",
        ...     tags={"NoCrossPost"},
        ... )
        >>> item.has_tag("nocrosspost")
        True
    """

    model_config = ConfigDict(frozen=True)

    guid: str = Field(description="Entry identifier")
    permalink: str = Field(description="URL of the post")
    published_at: int = Field(description="Publication time (epoch ms)")
    published: str = Field(default="", description="Original publication date string")
    raw_content: str = Field(default="", description="HTML/text content of the entry")
    media_url: str | None = Field(default=None, description="First attached media URL")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Lowercased category terms")

    @field_validator("tags", mode="before")
    @classmethod
    def _lowercase_tags(cls, value):
        return frozenset(str(tag).strip().lower() for tag in value or () if str(tag).strip())

    def has_tag(self, tag: str) -> bool:
        """Case-insensitive tag membership check."""
        return tag.strip().lower() in self.tags

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return f"FeedItem({self.published_at}, '{self.permalink}')"
