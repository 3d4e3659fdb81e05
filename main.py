#!/usr/bin/env python3
"""feedrelay: relay new feed posts to webhooks.

Polls one RSS feed, splits each new post into platform-sized segments and
posts them to Maker-style webhooks, remembering the newest post seen in a
checkpoint store.

Commands:
    run         Relay new posts once (the scheduled invocation)
    status      Show configuration and the stored checkpoint
    segment     Show how a text would be split into segments

Examples:
    python main.py run                    # Relay new posts
    python main.py run --dry-run          # Log payloads, send nothing
    python main.py status
    echo "long text" | python main.py segment

Serverless:
    main.handler(event, context) runs one relay and returns the report.

Environment:
    See config.py for all configuration options. A .env file in the
    working directory is loaded first.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from dotenv import load_dotenv

from config import Config
from errors import ConfigError, RelayError
from observability.logging import setup_logging

logger = logging.getLogger(__name__)


def _load_config() -> Config:
    """Load .env and build the configuration.

    Raises:
        ConfigError: If a value cannot be parsed
    """
    load_dotenv()
    try:
        return Config.load()
    except ValueError as e:
        raise ConfigError(str(e)) from e


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Relay new posts once.

    Returns:
        Exit code (0 when the run reached DONE)
    """
    from pipeline import run_once

    try:
        report = asyncio.run(run_once(config, dry_run=args.dry_run))
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130
    logger.info("Run complete | report=%s", json.dumps(report.to_dict()))
    return 0 if report.ok else 1


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and the stored checkpoint.

    Returns:
        Exit code (0 for success)
    """
    from checkpoint import CHECKPOINT_KEY, open_checkpoint_store

    checkpoint: dict[str, Any] = {"key": CHECKPOINT_KEY}
    try:
        store = open_checkpoint_store(config)
        try:
            value = store.get(CHECKPOINT_KEY)
        finally:
            store.close()
        checkpoint["value"] = value
        if value is not None:
            checkpoint["as_datetime"] = datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
    except RelayError as e:
        checkpoint["error"] = str(e)

    print(json.dumps({"config": config.summary(), "checkpoint": checkpoint}, indent=2))
    return 0 if "error" not in checkpoint else 1


def cmd_segment(args: argparse.Namespace, config: Config) -> int:
    """Print the segments a text would be relayed as.

    Returns:
        Exit code (0 for success)
    """
    from content import html_to_text
    from segmenter import segment, weighted_length

    raw = args.text if args.text is not None else sys.stdin.read()
    text = html_to_text(raw) if args.html else raw
    max_length = args.max_length or config.segment_max_length
    separator = args.separator or config.segment_separator

    parts = segment(text, max_length, separator)
    for i, part in enumerate(parts, 1):
        print(f"--- segment {i}/{len(parts)} (weighted length {weighted_length(part)})")
        print(part)
    return 0


def handler(event: Any = None, context: Any = None) -> dict[str, Any]:
    """Serverless entry point: run the relay once.

    Never raises; configuration errors and run failures are reported in
    the returned dict.
    """
    try:
        config = _load_config()
        if error := config.validate():
            raise ConfigError(error)
    except ConfigError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error("Configuration error | error=%s", e)
        return {"state": "failed", "error": f"Configuration error: {e}"}

    setup_logging(config)

    from pipeline import run_once

    report = asyncio.run(run_once(config))
    return report.to_dict()


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="feedrelay: relay new feed posts to webhooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Relay new posts once")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log payloads instead of sending them; do not write the checkpoint",
    )

    # status command
    subparsers.add_parser("status", help="Show configuration and checkpoint")

    # segment command
    segment_parser = subparsers.add_parser("segment", help="Preview segmentation of a text")
    segment_parser.add_argument(
        "text",
        nargs="?",
        help="Text to segment (default: read stdin)",
    )
    segment_parser.add_argument(
        "--html",
        action="store_true",
        help="Treat input as HTML and convert it to text first",
    )
    segment_parser.add_argument(
        "--max-length",
        type=int,
        default=0,
        help="Maximum weighted length (default: config SEGMENT_MAX_LENGTH)",
    )
    segment_parser.add_argument(
        "--separator",
        default="",
        help="Segment separator (default: config SEGMENT_SEPARATOR)",
    )

    args = parser.parse_args()

    try:
        config = _load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config, verbose=args.verbose)

    # Validate configuration for commands that need it
    if args.command in ("run", "status"):
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    commands = {
        "run": cmd_run,
        "status": cmd_status,
        "segment": cmd_segment,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logger.error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
