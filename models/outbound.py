"""Outbound models: segments and webhook payloads."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Channel(str, Enum):
    """Logical webhook destination.

    The two channels map to two separately configured webhook events, since
    the receiving applets differ between plain posts and posts with an
    attached image.
    """

    DEFAULT = "default"
    WITH_MEDIA = "with_media"


class Segment(BaseModel):
    """One chunk of an item's text."""

    model_config = ConfigDict(frozen=True)

    text: str
    has_media: bool = False


class OutboundPayload(BaseModel):
    """A single webhook call for one segment.

    Attributes:
        text: Primary text of the post
        media_url: Attached media URL (first segment only)
        permalink: URL of the original post
        channel: Destination channel
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Primary text")
    media_url: str | None = Field(default=None, description="Attached media URL")
    permalink: str | None = Field(default=None, description="URL of the original post")
    channel: Channel = Field(default=Channel.DEFAULT, description="Destination channel")

    def to_webhook_json(self) -> dict[str, str]:
        """Serialize to the Maker webhook value fields."""
        return {
            "value1": self.text,
            "value2": self.media_url or "",
            "value3": self.permalink or "",
        }
