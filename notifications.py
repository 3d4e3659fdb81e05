"""Webhook delivery for relayed posts.

Each OutboundPayload becomes one JSON POST to a Maker-style webhook:

    POST https://maker.ifttt.com/trigger/{event}/with/key/{key}
    {"value1": "<text>", "value2": "<media url>", "value3": "<permalink>"}

Two events are configured, one per Channel. The URL embeds the shared key,
so it is never logged in full.

A failed send raises DispatchError; the dispatcher decides what that means
for the rest of the item.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

import aiohttp

from config import Config
from errors import DispatchError
from models.outbound import Channel, OutboundPayload

logger = logging.getLogger(__name__)

SendFunc = Callable[[OutboundPayload], Awaitable[None]]


@runtime_checkable
class Sender(Protocol):
    """Async context manager that delivers payloads while entered."""

    async def __aenter__(self) -> Any:
        ...

    async def __aexit__(self, *args: Any) -> None:
        ...

    async def send(self, payload: OutboundPayload) -> None:
        ...


class WebhookSender:
    """Sends payloads to the webhook event configured for their channel.

    Use as an async context manager so one connection pool is shared by
    every send of a run:

        >>> async with WebhookSender.from_config(config) as sender:
        ...     await sender.send(payload)
    """

    def __init__(
        self,
        events: dict[Channel, str],
        key: str,
        url_template: str,
        timeout: float = 10.0,
    ):
        """Initialize the sender.

        Args:
            events: Webhook event name per channel
            key: Shared webhook key
            url_template: URL with {event} and {key} placeholders
            timeout: Per-request timeout in seconds
        """
        self.events = dict(events)
        self.key = key
        self.url_template = url_template
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @classmethod
    def from_config(cls, config: Config) -> "WebhookSender":
        return cls(
            events={
                Channel.DEFAULT: config.webhook_event,
                Channel.WITH_MEDIA: config.webhook_media_event,
            },
            key=config.webhook_key,
            url_template=config.webhook_url_template,
            timeout=config.webhook_timeout_seconds,
        )

    async def __aenter__(self) -> "WebhookSender":
        self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def url_for(self, channel: Channel) -> str:
        """Webhook URL for a channel."""
        return self.url_template.format(event=self.events[channel], key=self.key)

    async def send(self, payload: OutboundPayload) -> None:
        """POST one payload.

        Raises:
            DispatchError: On non-2xx status, timeout or connection error
        """
        if self._session is None:
            raise RuntimeError("WebhookSender must be used as an async context manager")

        event = self.events[payload.channel]
        try:
            async with self._session.post(
                self.url_for(payload.channel),
                json=payload.to_webhook_json(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if resp.status >= 300:
                    body = (await resp.text())[:200]
                    raise DispatchError(
                        f"Webhook {event} returned HTTP {resp.status}: {body}",
                        status=resp.status,
                    )
                logger.debug(
                    "Webhook sent | event=%s status=%d chars=%d media=%s",
                    event, resp.status, len(payload.text), bool(payload.media_url),
                )
        except asyncio.TimeoutError as e:
            raise DispatchError(f"Webhook {event} timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise DispatchError(f"Webhook {event} failed: {type(e).__name__}: {e}") from e


class DryRunSender:
    """Logs payloads instead of sending them."""

    def __init__(self):
        self.sent: list[OutboundPayload] = []

    async def __aenter__(self) -> "DryRunSender":
        return self

    async def __aexit__(self, *args) -> None:
        return None

    async def send(self, payload: OutboundPayload) -> None:
        self.sent.append(payload)
        logger.info(
            "Dry run | channel=%s media=%s text=%r",
            payload.channel.value, payload.media_url or "-", payload.text[:80],
        )
