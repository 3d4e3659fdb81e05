import asyncio
from datetime import datetime, timezone

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from errors import FetchError, ParseError
from feeds import fetch_feed_document, load_feed, parse_feed


def _ms(hour: int) -> int:
    return int(datetime(2024, 5, 7, hour, tzinfo=timezone.utc).timestamp() * 1000)


def test_parse_mastodon_feed(mastodon_rss):
    items = parse_feed(mastodon_rss)

    assert [i.published_at for i in items] == [_ms(10), _ms(9), _ms(8)]
    first, second, third = items
    assert first.permalink == "https://social.example/@me/300"
    assert first.guid == "https://social.example/@me/300"
    assert first.media_url == "https://files.social.example/media/sunset.jpg"
    assert first.tags == frozenset({"photo"})
    assert "<br" in first.raw_content
    assert second.has_tag("nocrosspost")
    assert second.media_url is None
    assert third.tags == frozenset()
    assert third.published == "Tue, 07 May 2024 08:00:00 +0000"


def test_parse_image_enclosure_as_media():
    document = """<?xml version="1.0"?>
    <rss version="2.0"><channel><title>t</title>
      <item>
        <link>https://blog.example/1</link>
        <pubDate>Tue, 07 May 2024 08:00:00 +0000</pubDate>
        <description>hello</description>
        <enclosure url="https://blog.example/1.png" type="image/png" length="10" />
      </item>
    </channel></rss>"""
    (item,) = parse_feed(document)
    assert item.media_url == "https://blog.example/1.png"
    assert item.guid == "https://blog.example/1"


def test_entries_without_date_are_skipped():
    document = """<?xml version="1.0"?>
    <rss version="2.0"><channel><title>t</title>
      <item><link>https://blog.example/1</link><description>no date</description></item>
      <item>
        <link>https://blog.example/2</link>
        <pubDate>Tue, 07 May 2024 08:00:00 +0000</pubDate>
      </item>
    </channel></rss>"""
    items = parse_feed(document)
    assert [i.permalink for i in items] == ["https://blog.example/2"]


def test_empty_channel_is_not_an_error():
    document = '<?xml version="1.0"?><rss version="2.0"><channel><title>t</title></channel></rss>'
    assert parse_feed(document) == []


def test_garbage_document_raises_parse_error():
    with pytest.raises(ParseError):
        parse_feed("this is not a feed")


def _app(handler) -> web.Application:
    app = web.Application()
    app.router.add_get("/feed.rss", handler)
    return app


@pytest.mark.asyncio
async def test_fetch_and_parse(mastodon_rss):
    async def handler(request):
        return web.Response(text=mastodon_rss, content_type="application/rss+xml")

    async with TestServer(_app(handler)) as server:
        items = await load_feed(str(server.make_url("/feed.rss")), timeout=5)

    assert len(items) == 3


@pytest.mark.asyncio
async def test_fetch_non_2xx_raises():
    async def handler(request):
        return web.Response(status=503, text="down")

    async with TestServer(_app(handler)) as server:
        with pytest.raises(FetchError, match="HTTP 503"):
            await fetch_feed_document(str(server.make_url("/feed.rss")), timeout=5)


@pytest.mark.asyncio
async def test_fetch_timeout_raises():
    async def handler(request):
        await asyncio.sleep(1)
        return web.Response(text="late")

    async with TestServer(_app(handler)) as server:
        with pytest.raises(FetchError, match="timed out"):
            await fetch_feed_document(str(server.make_url("/feed.rss")), timeout=0.1)


@pytest.mark.asyncio
async def test_fetch_connection_error_raises():
    with pytest.raises(FetchError):
        await fetch_feed_document("http://127.0.0.1:9/feed.rss", timeout=2)
