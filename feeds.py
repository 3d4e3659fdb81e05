"""Feed fetching and parsing.

This module fetches the single configured feed and converts its entries into
FeedItem objects, newest first as the feed lists them.

Error Handling Strategy:
    - Network errors, timeouts and non-2xx responses raise FetchError
    - SSL certificate errors trigger one retry without verification
    - A document feedparser does not recognize as a feed raises ParseError
    - Individual entries without a date or link are skipped with a warning
"""

import asyncio
import calendar
import logging
import ssl

import aiohttp
import certifi
import feedparser

from errors import FetchError, ParseError
from models.item import FeedItem

logger = logging.getLogger(__name__)

USER_AGENT = "feedrelay/0.1 (+https://github.com/feedrelay/feedrelay)"


def _ssl_context(verify: bool = True) -> ssl.SSLContext:
    """Create SSL context with optional certificate verification.

    Args:
        verify: If True, verify SSL certificates using certifi bundle.
                If False, disable verification (for problematic servers).
    """
    if verify:
        return ssl.create_default_context(cafile=certifi.where())
    ctx = ssl.create_default_context()
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    return ctx


def _published_ms(entry: dict) -> int | None:
    """Extract publication time from a feed entry as epoch milliseconds.

    Tries published_parsed (RSS pubDate), then updated_parsed (Atom).
    feedparser normalizes both to UTC struct_time.
    """
    for field in ("published_parsed", "updated_parsed"):
        time_tuple = entry.get(field)
        if time_tuple:
            try:
                return calendar.timegm(time_tuple) * 1000
            except (TypeError, ValueError, OverflowError):
                continue
    return None


def _media_url(entry: dict) -> str | None:
    """URL of the first attached media file.

    Prefers <media:content url="...">, falls back to an image enclosure.
    """
    for media in entry.get("media_content") or []:
        url = media.get("url")
        if url:
            return url
    for link in entry.get("links") or []:
        if link.get("rel") == "enclosure" and str(link.get("type", "")).startswith("image/"):
            if link.get("href"):
                return link["href"]
    return None


def _tags(entry: dict) -> list[str]:
    return [tag.get("term", "") for tag in entry.get("tags") or [] if tag.get("term")]


def _entry_content(entry: dict) -> str:
    description = entry.get("description") or entry.get("summary")
    if description:
        return description
    for content in entry.get("content") or []:
        if content.get("value"):
            return content["value"]
    return ""


async def fetch_feed_document(
    url: str,
    timeout: float = 30,
    session: aiohttp.ClientSession | None = None,
    verify_ssl: bool = True,
) -> str:
    """Fetch the raw feed document.

    Args:
        url: Feed URL
        timeout: Total request timeout in seconds
        session: Optional session to reuse (a private one is created otherwise)
        verify_ssl: Whether to verify SSL certificates

    Returns:
        Response body as text

    Raises:
        FetchError: On network errors, timeouts or non-2xx status
    """
    if session is None:
        async with aiohttp.ClientSession() as own_session:
            return await fetch_feed_document(url, timeout, own_session, verify_ssl)

    try:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            headers={"User-Agent": USER_AGENT},
            ssl=_ssl_context(verify_ssl),
        ) as resp:
            if not 200 <= resp.status < 300:
                raise FetchError(f"Feed {url}: HTTP {resp.status}")
            body = await resp.text()
            logger.debug("Feed fetched | url=%s bytes=%d", url, len(body))
            return body
    except aiohttp.ClientSSLError as e:
        if verify_ssl:
            logger.warning("Feed %s: SSL error, retrying without verification", url)
            return await fetch_feed_document(url, timeout, session, verify_ssl=False)
        raise FetchError(f"Feed {url}: SSL verification failed: {e}") from e
    except asyncio.TimeoutError as e:
        raise FetchError(f"Feed {url}: request timed out after {timeout}s") from e
    except aiohttp.ClientError as e:
        raise FetchError(f"Feed {url}: {type(e).__name__}: {e}") from e


def parse_feed(document: str) -> list[FeedItem]:
    """Parse a feed document into FeedItems, preserving feed order.

    Args:
        document: Raw RSS/Atom document

    Returns:
        FeedItems in document order (newest first for well-behaved feeds)

    Raises:
        ParseError: If the document is not a recognizable feed
    """
    feed = feedparser.parse(document)
    if not feed.get("version") and not feed.entries:
        reason = feed.get("bozo_exception") or "not a feed document"
        raise ParseError(f"Unable to parse feed: {reason}")
    if feed.get("bozo"):
        logger.warning("Feed is not well-formed, continuing | error=%s", feed.get("bozo_exception"))

    items: list[FeedItem] = []
    for entry in feed.entries:
        link = entry.get("link", "")
        published_at = _published_ms(entry)
        if not link or published_at is None:
            logger.warning("Feed entry skipped, missing link or date | id=%s", entry.get("id", "?"))
            continue

        items.append(FeedItem(
            guid=entry.get("id") or link,
            permalink=link,
            published_at=published_at,
            published=entry.get("published", "") or entry.get("updated", ""),
            raw_content=_entry_content(entry),
            media_url=_media_url(entry),
            tags=_tags(entry),
        ))

    logger.debug("Feed parsed | entries=%d items=%d", len(feed.entries), len(items))
    return items


async def load_feed(
    url: str,
    timeout: float = 30,
    session: aiohttp.ClientSession | None = None,
) -> list[FeedItem]:
    """Fetch and parse the feed.

    Raises:
        FetchError: If the document cannot be fetched
        ParseError: If the document cannot be parsed
    """
    document = await fetch_feed_document(url, timeout, session=session)
    items = parse_feed(document)
    logger.info("Feed loaded | url=%s items=%d", url, len(items))
    return items
