from pathlib import Path

import pytest

from config import Config
from models.item import FeedItem

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def make_item():
    """Factory for FeedItems with sensible defaults."""

    def _make(published_at: int, **overrides) -> FeedItem:
        fields = {
            "guid": f"https://social.example/@me/{published_at}",
            "permalink": f"https://social.example/@me/{published_at}",
            "published_at": published_at,
            "raw_content": f"<p>post {published_at}</p>",
        }
        fields.update(overrides)
        return FeedItem(**fields)

    return _make


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        feed_url="https://social.example/@me.rss",
        checkpoint_table="relay_checkpoint",
        checkpoint_db_path=tmp_path / "checkpoint.db",
        webhook_event="post_plain",
        webhook_media_event="post_media",
        webhook_key="secret-key",
        max_items=20,
    )


@pytest.fixture
def mastodon_rss() -> str:
    return (FIXTURES / "mastodon.rss").read_text(encoding="utf-8")
