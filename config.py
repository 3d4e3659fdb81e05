"""Configuration management for the feed relay.

All settings are loaded from environment variables once at startup and
passed explicitly into the pipeline. A `.env` file in the working directory
is honoured (see main.py).

Environment Variables:
    Required:
        RSS_FEED_URL: Feed to poll
        CHECKPOINT_TABLE: Table holding the checkpoint
        WEBHOOK_EVENT: Webhook event for plain posts (default channel)
        WEBHOOK_MEDIA_EVENT: Webhook event for posts with an image
        WEBHOOK_KEY: Shared webhook key
        MAX_ITEMS: Maximum feed items considered per run

    Checkpoint Store:
        CHECKPOINT_BACKEND: 'sqlite' (default) or 'dynamodb'
        CHECKPOINT_DB_PATH: SQLite file path (sqlite backend)
        CHECKPOINT_REGION: AWS region (required for dynamodb backend)
        CHECKPOINT_ENDPOINT_URL: Custom DynamoDB endpoint (e.g. local)

    Webhooks:
        WEBHOOK_URL_TEMPLATE: URL with {event} and {key} placeholders
        WEBHOOK_TIMEOUT_SECONDS: Per-request timeout

    Segmentation:
        SEGMENT_MAX_LENGTH: Maximum weighted length of one segment
        SEGMENT_SEPARATOR: Author-controlled segment break marker
        EXCLUDE_TAG: Items with this tag are never relayed

    Pipeline Behavior:
        DISPATCH_CONCURRENCY: Items dispatched concurrently (1 keeps feed order)
        FEED_TIMEOUT_SECONDS: Feed fetch timeout

    Logging:
        LOG_LEVEL: 'normal' or 'debug' (standard level names also accepted)
        LOG_FORMAT: 'text' or 'json'
        LOG_DIR: Directory for rotated log files (empty = console only)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing
        LOGFIRE_TOKEN: Logfire token
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path

DEFAULT_WEBHOOK_URL_TEMPLATE = "https://maker.ifttt.com/trigger/{event}/with/key/{key}"

# Verbosity aliases accepted in LOG_LEVEL on top of the standard level names
LOG_LEVEL_ALIASES = {
    "NORMAL": "INFO",
    "DEBUG": "DEBUG",
}

_TABLE_NAME = re.compile(r"^[A-Za-z0-9_.-]{3,255}$")


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Parsed integer or default value

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _log_level(raw: str) -> str:
    """Normalize LOG_LEVEL, mapping 'normal'/'debug' to logging level names."""
    level = raw.strip().upper() or "NORMAL"
    return LOG_LEVEL_ALIASES.get(level, level)


def _redact(secret: str) -> str:
    if len(secret) <= 4:
        return "***" if secret else ""
    return secret[:2] + "***" + secret[-2:]


@dataclass
class Config:
    """Relay configuration loaded from environment variables.

    Use Config.load() to create an instance from the environment, then
    check Config.validate() before running.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Required ===
    feed_url: str = ""  # RSS_FEED_URL
    checkpoint_table: str = ""  # CHECKPOINT_TABLE
    webhook_event: str = ""  # WEBHOOK_EVENT - default channel
    webhook_media_event: str = ""  # WEBHOOK_MEDIA_EVENT - with-media channel
    webhook_key: str = ""  # WEBHOOK_KEY
    max_items: int = 0  # MAX_ITEMS

    # === Checkpoint Store ===
    checkpoint_backend: str = "sqlite"  # CHECKPOINT_BACKEND - 'sqlite' or 'dynamodb'
    checkpoint_db_path: Path = Path("checkpoint.db")  # CHECKPOINT_DB_PATH
    checkpoint_region: str = ""  # CHECKPOINT_REGION
    checkpoint_endpoint_url: str = ""  # CHECKPOINT_ENDPOINT_URL

    # === Webhooks ===
    webhook_url_template: str = DEFAULT_WEBHOOK_URL_TEMPLATE  # WEBHOOK_URL_TEMPLATE
    webhook_timeout_seconds: float = 10.0  # WEBHOOK_TIMEOUT_SECONDS

    # === Segmentation ===
    segment_max_length: int = 280  # SEGMENT_MAX_LENGTH
    segment_separator: str = "===="  # SEGMENT_SEPARATOR
    exclude_tag: str = "nocrosspost"  # EXCLUDE_TAG

    # === Pipeline Behavior ===
    dispatch_concurrency: int = 1  # DISPATCH_CONCURRENCY
    feed_timeout_seconds: float = 30.0  # FEED_TIMEOUT_SECONDS

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - normal|debug
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json'
    log_dir: Path | None = None  # LOG_DIR - unset means console only
    log_backup_count: int = 7  # LOG_BACKUP_COUNT
    log_max_bytes: int = 0  # LOG_MAX_BYTES - 0 = daily rotation

    # === Optional: Observability ===
    enable_logfire: bool = False  # ENABLE_LOGFIRE
    logfire_token: str = ""  # LOGFIRE_TOKEN

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        log_dir = _env("LOG_DIR")
        return cls(
            feed_url=_env("RSS_FEED_URL"),
            checkpoint_table=_env("CHECKPOINT_TABLE"),
            webhook_event=_env("WEBHOOK_EVENT"),
            webhook_media_event=_env("WEBHOOK_MEDIA_EVENT"),
            webhook_key=_env("WEBHOOK_KEY"),
            max_items=_env_int("MAX_ITEMS", 0),
            checkpoint_backend=_env("CHECKPOINT_BACKEND", "sqlite").lower(),
            checkpoint_db_path=Path(_env("CHECKPOINT_DB_PATH", "checkpoint.db")),
            checkpoint_region=_env("CHECKPOINT_REGION"),
            checkpoint_endpoint_url=_env("CHECKPOINT_ENDPOINT_URL"),
            webhook_url_template=_env("WEBHOOK_URL_TEMPLATE", DEFAULT_WEBHOOK_URL_TEMPLATE),
            webhook_timeout_seconds=_env_float("WEBHOOK_TIMEOUT_SECONDS", 10.0),
            segment_max_length=_env_int("SEGMENT_MAX_LENGTH", 280),
            segment_separator=_env("SEGMENT_SEPARATOR", "===="),
            exclude_tag=_env("EXCLUDE_TAG", "nocrosspost"),
            dispatch_concurrency=_env_int("DISPATCH_CONCURRENCY", 1),
            feed_timeout_seconds=_env_float("FEED_TIMEOUT_SECONDS", 30.0),
            log_level=_log_level(_env("LOG_LEVEL", "normal")),
            log_format=_env("LOG_FORMAT", "text").lower(),
            log_dir=Path(log_dir) if log_dir else None,
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 7),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
        )

    @property
    def debug(self) -> bool:
        """True when verbose (debug) logging is configured."""
        return self.log_level == "DEBUG"

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Returns:
            Error message string if invalid, None if valid.
        """
        required = (
            ("RSS_FEED_URL", self.feed_url),
            ("CHECKPOINT_TABLE", self.checkpoint_table),
            ("WEBHOOK_EVENT", self.webhook_event),
            ("WEBHOOK_MEDIA_EVENT", self.webhook_media_event),
            ("WEBHOOK_KEY", self.webhook_key),
        )
        for name, value in required:
            if not value:
                return f"{name} environment variable is required"
        if not self.feed_url.startswith(("http://", "https://")):
            return f"Invalid RSS_FEED_URL '{self.feed_url}' - must be an http(s) URL"
        if self.max_items <= 0:
            return "MAX_ITEMS must be a positive integer"
        if self.checkpoint_backend not in ("sqlite", "dynamodb"):
            return f"Invalid CHECKPOINT_BACKEND '{self.checkpoint_backend}' - must be 'sqlite' or 'dynamodb'"
        if not _TABLE_NAME.match(self.checkpoint_table):
            return f"Invalid CHECKPOINT_TABLE '{self.checkpoint_table}'"
        if self.checkpoint_backend == "dynamodb" and not self.checkpoint_region:
            return "CHECKPOINT_REGION is required for the dynamodb backend"
        if "{event}" not in self.webhook_url_template or "{key}" not in self.webhook_url_template:
            return "WEBHOOK_URL_TEMPLATE must contain {event} and {key} placeholders"
        if self.segment_max_length <= 0:
            return "SEGMENT_MAX_LENGTH must be positive"
        if not self.segment_separator:
            return "SEGMENT_SEPARATOR must not be empty"
        if self.dispatch_concurrency <= 0:
            return "DISPATCH_CONCURRENCY must be positive"
        if self.feed_timeout_seconds <= 0 or self.webhook_timeout_seconds <= 0:
            return "Timeouts must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be 'normal' or 'debug'"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None

    def summary(self) -> dict[str, object]:
        """Configuration snapshot with secrets redacted, for status output."""
        return {
            "feed_url": self.feed_url,
            "max_items": self.max_items,
            "checkpoint": {
                "backend": self.checkpoint_backend,
                "table": self.checkpoint_table,
                "db_path": str(self.checkpoint_db_path) if self.checkpoint_backend == "sqlite" else None,
                "region": self.checkpoint_region or None,
                "endpoint_url": self.checkpoint_endpoint_url or None,
            },
            "webhook": {
                "event": self.webhook_event,
                "media_event": self.webhook_media_event,
                "key": _redact(self.webhook_key),
                "timeout_seconds": self.webhook_timeout_seconds,
            },
            "segment": {
                "max_length": self.segment_max_length,
                "separator": self.segment_separator,
                "exclude_tag": self.exclude_tag,
            },
            "dispatch_concurrency": self.dispatch_concurrency,
            "log_level": self.log_level,
            "enable_logfire": self.enable_logfire,
        }
