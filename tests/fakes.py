"""Test doubles for the relay's external collaborators."""

from __future__ import annotations

from typing import Any, Callable, Optional

from botocore.exceptions import ClientError

from errors import CheckpointReadError, CheckpointWriteError, DispatchError
from models.outbound import OutboundPayload


class MemoryCheckpointStore:
    """In-memory checkpoint store that records writes."""

    def __init__(self, value: Optional[int] = None, fail_get: bool = False, fail_put: bool = False) -> None:
        self.values: dict[str, int] = {}
        if value is not None:
            self.values["last_processed_item"] = value
        self.fail_get = fail_get
        self.fail_put = fail_put
        self.puts: list[tuple[str, int]] = []
        self.closed = False

    def get(self, key: str = "last_processed_item") -> Optional[int]:
        if self.fail_get:
            raise CheckpointReadError("store unavailable")
        return self.values.get(key)

    def put(self, key: str, value: int) -> None:
        if self.fail_put:
            raise CheckpointWriteError("store unavailable")
        self.puts.append((key, value))
        self.values[key] = value

    def close(self) -> None:
        self.closed = True


class RecordingSender:
    """Webhook sender double; fails payloads matching `fail_when`."""

    def __init__(self, fail_when: Optional[Callable[[OutboundPayload], bool]] = None) -> None:
        self.sent: list[OutboundPayload] = []
        self.attempts: list[OutboundPayload] = []
        self.fail_when = fail_when
        self.entered = 0

    async def __aenter__(self) -> "RecordingSender":
        self.entered += 1
        return self

    async def __aexit__(self, *args: Any) -> None:
        return None

    async def send(self, payload: OutboundPayload) -> None:
        self.attempts.append(payload)
        if self.fail_when is not None and self.fail_when(payload):
            raise DispatchError(f"refused: {payload.text[:20]}", status=500)
        self.sent.append(payload)


class FakeDynamoClient:
    """Minimal stand-in for a boto3 DynamoDB client."""

    def __init__(self, fail: bool = False) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self.fail = fail
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _maybe_fail(self, op: str) -> None:
        if self.fail:
            raise ClientError(
                {"Error": {"Code": "ResourceNotFoundException", "Message": "no table"}},
                op,
            )

    def get_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("get_item", kwargs))
        self._maybe_fail("GetItem")
        key = kwargs["Key"]["id"]["S"]
        item = self.tables.get(kwargs["TableName"], {}).get(key)
        return {"Item": item} if item is not None else {}

    def put_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("put_item", kwargs))
        self._maybe_fail("PutItem")
        item = kwargs["Item"]
        self.tables.setdefault(kwargs["TableName"], {})[item["id"]["S"]] = item
        return {}
