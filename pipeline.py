"""Run orchestration for the feed relay.

One invocation is one pass through:

    IDLE -> FETCHING_FEED -> LOADING_CHECKPOINT -> FILTERING
         -> DISPATCHING -> COMMITTING_CHECKPOINT -> DONE

Fetch, parse and checkpoint-read failures end the run in FAILED before
anything is sent and before the checkpoint is touched.

Dispatching is "settle all, then commit": every selected item is dispatched
(concurrently up to DISPATCH_CONCURRENCY, segments of one item always in
order), and once all of them have settled the checkpoint is advanced to the
newest publication time seen, whether or not every delivery succeeded. The
checkpoint tracks what was considered, not what was delivered, so a failed
item is not retried. A failed checkpoint write is logged; the next run then
reprocesses the same batch.

run_once never raises except on cancellation.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from checkpoint import CHECKPOINT_KEY, CheckpointStore, open_checkpoint_store
from config import Config
from dispatcher import DispatchResult, dispatch, segment_item
from errors import CheckpointReadError, CheckpointWriteError, FetchError, ParseError
from feeds import load_feed
from filters import select_new_items
from models.item import FeedItem
from notifications import DryRunSender, Sender, WebhookSender
from observability.logging import clear_context, set_run_context
from observability.tracing import setup_tracing, trace_operation

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Stages of a relay run."""

    IDLE = "idle"
    FETCHING_FEED = "fetching_feed"
    LOADING_CHECKPOINT = "loading_checkpoint"
    FILTERING = "filtering"
    DISPATCHING = "dispatching"
    COMMITTING_CHECKPOINT = "committing_checkpoint"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RunStats:
    """Counts from a single run.

    Attributes:
        fetched: Items parsed from the feed
        considered: Items within MAX_ITEMS
        selected: New items to relay
        excluded: New items skipped by exclusion tag
        relayed: Items fully delivered
        failed: Items with a failed send
        segments_sent: Webhook calls that succeeded
        checkpoint_before: Checkpoint at start of run
        checkpoint_after: Checkpoint committed (or that would have been)
        checkpoint_committed: Whether the checkpoint was written
        duration: Run time in seconds
    """

    fetched: int = 0
    considered: int = 0
    selected: int = 0
    excluded: int = 0
    relayed: int = 0
    failed: int = 0
    segments_sent: int = 0
    checkpoint_before: int | None = None
    checkpoint_after: int | None = None
    checkpoint_committed: bool = False
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


@dataclass
class RunReport:
    """Final state of a run."""

    run_id: str
    state: RunState = RunState.IDLE
    stats: RunStats = field(default_factory=RunStats)
    error: str | None = None
    commit_failed: bool = False

    @property
    def ok(self) -> bool:
        return self.state is RunState.DONE

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "state": self.state.value,
            "error": self.error,
            "commit_failed": self.commit_failed,
            "stats": self.stats.to_dict(),
        }


class Pipeline:
    """Feed-to-webhook relay run.

    Collaborators can be injected (tests, dry runs); by default the
    checkpoint store and webhook sender are built from the configuration.

    Example:
        >>> pipeline = Pipeline(config)
        >>> report = await pipeline.run_once()
        >>> report.state
        <RunState.DONE: 'done'>
    """

    def __init__(
        self,
        config: Config,
        store: CheckpointStore | None = None,
        sender: Sender | None = None,
        dry_run: bool = False,
    ):
        """Initialize the pipeline.

        Args:
            config: Validated configuration
            store: Checkpoint store (opened from config on first run if None)
            sender: Async context manager with `send(payload)`
                    (WebhookSender from config if None)
            dry_run: Log payloads instead of sending, never commit
        """
        self.config = config
        self.dry_run = dry_run
        self._store = store
        self._owns_store = store is None
        if sender is None:
            sender = DryRunSender() if dry_run else WebhookSender.from_config(config)
        self.sender = sender

        if config.enable_logfire:
            setup_tracing(enabled=True, service_name="feedrelay", token=config.logfire_token)

    @property
    def store(self) -> CheckpointStore:
        if self._store is None:
            self._store = open_checkpoint_store(self.config)
        return self._store

    async def _dispatch_all(self, items: list[FeedItem]) -> list[DispatchResult | BaseException]:
        """Dispatch every item and wait for all of them to settle."""
        semaphore = asyncio.Semaphore(self.config.dispatch_concurrency)

        async def dispatch_one(item: FeedItem) -> DispatchResult:
            async with semaphore:
                segments = segment_item(
                    item,
                    self.config.segment_max_length,
                    self.config.segment_separator,
                )
                logger.debug("Item segmented | link=%s segments=%d", item.permalink, len(segments))
                return await dispatch(item, segments, self.sender.send)

        async with self.sender:
            tasks = [dispatch_one(item) for item in items]
            return await asyncio.gather(*tasks, return_exceptions=True)

    async def run_once(self) -> RunReport:
        """Execute one relay run.

        Returns:
            RunReport with the final state (DONE or FAILED) and stats
        """
        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id)
        start = time.time()
        report = RunReport(run_id=run_id)
        stats = report.stats

        logger.info("Run started | feed=%s dry_run=%s", self.config.feed_url, self.dry_run)

        try:
            # Fetch + parse
            report.state = RunState.FETCHING_FEED
            with trace_operation("fetch_feed", {"url": self.config.feed_url}) as attrs:
                items = await load_feed(self.config.feed_url, timeout=self.config.feed_timeout_seconds)
                attrs["items"] = len(items)
            stats.fetched = len(items)
            if self.config.debug:
                for item in items:
                    logger.debug("Parsed item | %s tags=%s media=%s", item, sorted(item.tags), item.media_url)

            # Checkpoint
            report.state = RunState.LOADING_CHECKPOINT
            last_checkpoint = self.store.get(CHECKPOINT_KEY)
            stats.checkpoint_before = last_checkpoint
            logger.info("Checkpoint loaded | last=%s", last_checkpoint)

            # Filter
            report.state = RunState.FILTERING
            selection = select_new_items(
                items,
                last_checkpoint,
                self.config.max_items,
                exclude_tag=self.config.exclude_tag,
            )
            stats.considered = selection.considered
            stats.selected = len(selection.selected)
            stats.excluded = len(selection.excluded)
            stats.checkpoint_after = selection.new_checkpoint
            logger.info(
                "Items selected | considered=%d new=%d excluded=%d",
                stats.considered, stats.selected, stats.excluded,
            )

            # Dispatch: settle all, then commit
            report.state = RunState.DISPATCHING
            if selection.selected:
                with trace_operation("dispatch", {"items": stats.selected}) as attrs:
                    results = await self._dispatch_all(selection.selected)
                    for item, result in zip(selection.selected, results):
                        if isinstance(result, BaseException):
                            stats.failed += 1
                            logger.error(
                                "Dispatch crashed | link=%s error=%s (%s)",
                                item.permalink, result, type(result).__name__,
                                exc_info=result,
                            )
                            continue
                        stats.segments_sent += result.sent
                        if result.ok:
                            stats.relayed += 1
                        else:
                            stats.failed += 1
                    attrs["relayed"] = stats.relayed
                    attrs["failed"] = stats.failed

            report.state = RunState.COMMITTING_CHECKPOINT
            self._commit(report, last_checkpoint, selection.new_checkpoint)
            report.state = RunState.DONE

        except asyncio.CancelledError:
            logger.info("Run cancelled | state=%s", report.state.value)
            raise
        except (FetchError, ParseError, CheckpointReadError) as e:
            logger.error("Run failed | state=%s error=%s", report.state.value, e)
            report.error = str(e)
            report.state = RunState.FAILED
        except Exception as e:
            logger.error(
                "Run failed | state=%s type=%s error=%s",
                report.state.value, type(e).__name__, e, exc_info=True,
            )
            report.error = f"{type(e).__name__}: {e}"
            report.state = RunState.FAILED
        finally:
            stats.duration = time.time() - start
            logger.info(
                "Run done | state=%s duration=%.1fs relayed=%d failed=%d checkpoint=%s",
                report.state.value, stats.duration, stats.relayed, stats.failed,
                stats.checkpoint_after,
            )
            clear_context()

        return report

    def _commit(self, report: RunReport, last: int | None, new: int | None) -> None:
        """Write the checkpoint once, if it moved forward."""
        if self.dry_run:
            logger.info("Dry run, checkpoint not written | would_be=%s", new)
            return
        if new is None or (last is not None and new <= last):
            logger.debug("Checkpoint unchanged | value=%s", last)
            return
        try:
            self.store.put(CHECKPOINT_KEY, new)
        except CheckpointWriteError as e:
            report.commit_failed = True
            report.error = str(e)
            logger.error("Checkpoint write failed, batch will be reprocessed | error=%s", e)
            return
        report.stats.checkpoint_committed = True
        logger.info("Checkpoint committed | %s -> %s", last, new)

    def close(self) -> None:
        """Clean up resources."""
        if self._owns_store and self._store is not None:
            self._store.close()
            self._store = None


async def run_once(config: Config, dry_run: bool = False) -> RunReport:
    """Run the relay once with collaborators built from config."""
    pipeline = Pipeline(config, dry_run=dry_run)
    try:
        return await pipeline.run_once()
    finally:
        pipeline.close()
