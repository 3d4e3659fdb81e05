"""Checkpoint storage for the feed relay.

The checkpoint is a single integer (epoch milliseconds of the newest feed
item already considered) stored under a fixed key. Two backends exist:

    SqliteCheckpointStore:
        Local SQLite file, one row per key. Default backend.

    DynamoCheckpointStore:
        DynamoDB table with string partition key `id` and numeric attribute
        `pubDate`, the layout of existing relay tables.

Both raise CheckpointReadError / CheckpointWriteError so the pipeline can
tell a failed read (abort the run) from a failed write (report and move on).

Concurrency:
    There is no locking. Two runs started at the same time may both read the
    same checkpoint and relay the same items twice. Schedule one run at a time.
"""

import logging
import sqlite3
import time
from pathlib import Path
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from config import Config
from errors import CheckpointReadError, CheckpointWriteError

logger = logging.getLogger(__name__)

CHECKPOINT_KEY = "last_processed_item"


class CheckpointStore(Protocol):
    """Key-value store holding checkpoint timestamps."""

    def get(self, key: str = CHECKPOINT_KEY) -> int | None:
        ...

    def put(self, key: str, value: int) -> None:
        ...

    def close(self) -> None:
        ...


class SqliteCheckpointStore:
    """SQLite-backed checkpoint store.

    Example:
        >>> with SqliteCheckpointStore("checkpoint.db", "relay_checkpoint") as store:
        ...     store.put(CHECKPOINT_KEY, 1700000000000)
        ...     store.get()
        1700000000000
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS "{table}" (
        id TEXT PRIMARY KEY,             -- Checkpoint key
        pub_date INTEGER NOT NULL,       -- Publication time (epoch ms)
        updated_at INTEGER NOT NULL      -- When it was written (Unix epoch)
    );
    """

    path: Path
    table: str
    conn: sqlite3.Connection

    def __init__(self, path: Path | str, table: str):
        """Open (and create if needed) the checkpoint database.

        Args:
            path: Path to SQLite database file
            table: Table name (validated by Config)

        Raises:
            CheckpointReadError: If the database cannot be opened
        """
        self.path = Path(path)
        self.table = table
        try:
            if self.path.parent != Path("."):
                self.path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.path))
            self.conn.row_factory = sqlite3.Row
            self.conn.executescript(self.SCHEMA.format(table=table))
            self.conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise CheckpointReadError(f"Cannot open checkpoint database {self.path}: {e}") from e
        logger.debug("Checkpoint database initialized | path=%s table=%s", self.path, table)

    def get(self, key: str = CHECKPOINT_KEY) -> int | None:
        """Read the checkpoint for key, None if never written."""
        try:
            row = self.conn.execute(
                f'SELECT pub_date FROM "{self.table}" WHERE id = ?', (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise CheckpointReadError(f"Checkpoint read failed: {e}") from e
        return int(row["pub_date"]) if row else None

    def put(self, key: str, value: int) -> None:
        """Write the checkpoint for key."""
        try:
            self.conn.execute(
                f'INSERT INTO "{self.table}" (id, pub_date, updated_at) VALUES (?, ?, ?) '
                "ON CONFLICT(id) DO UPDATE SET pub_date = excluded.pub_date, "
                "updated_at = excluded.updated_at",
                (key, int(value), int(time.time())),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise CheckpointWriteError(f"Checkpoint write failed: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        self.conn.close()

    def __enter__(self) -> "SqliteCheckpointStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class DynamoCheckpointStore:
    """DynamoDB-backed checkpoint store.

    Item layout: {"id": {"S": key}, "pubDate": {"N": "<epoch ms>"}}
    """

    def __init__(
        self,
        table: str,
        region: str,
        endpoint_url: str | None = None,
        client: Any = None,
    ):
        """Create the store.

        Args:
            table: DynamoDB table name
            region: AWS region
            endpoint_url: Optional endpoint override (DynamoDB Local, LocalStack)
            client: Pre-built boto3 DynamoDB client (mainly for tests)
        """
        self.table = table
        self.client = client or boto3.client(
            "dynamodb",
            region_name=region,
            endpoint_url=endpoint_url or None,
        )

    def get(self, key: str = CHECKPOINT_KEY) -> int | None:
        try:
            response = self.client.get_item(
                TableName=self.table,
                Key={"id": {"S": key}},
                ConsistentRead=True,
            )
        except (BotoCoreError, ClientError) as e:
            raise CheckpointReadError(f"Checkpoint read failed: {e}") from e

        item = response.get("Item")
        if not item or "pubDate" not in item:
            return None
        try:
            return int(item["pubDate"]["N"])
        except (KeyError, TypeError, ValueError) as e:
            raise CheckpointReadError(f"Malformed checkpoint item: {item!r}") from e

    def put(self, key: str, value: int) -> None:
        try:
            self.client.put_item(
                TableName=self.table,
                Item={
                    "id": {"S": key},
                    "pubDate": {"N": str(int(value))},
                },
            )
        except (BotoCoreError, ClientError) as e:
            raise CheckpointWriteError(f"Checkpoint write failed: {e}") from e

    def close(self) -> None:
        close = getattr(self.client, "close", None)
        if callable(close):
            close()


def open_checkpoint_store(config: Config) -> CheckpointStore:
    """Open the checkpoint store selected by CHECKPOINT_BACKEND.

    Raises:
        CheckpointReadError: If the backend cannot be initialized
    """
    if config.checkpoint_backend == "dynamodb":
        try:
            return DynamoCheckpointStore(
                config.checkpoint_table,
                config.checkpoint_region,
                config.checkpoint_endpoint_url,
            )
        except (BotoCoreError, ClientError, ValueError) as e:
            raise CheckpointReadError(f"Cannot create DynamoDB client: {e}") from e
    return SqliteCheckpointStore(config.checkpoint_db_path, config.checkpoint_table)
