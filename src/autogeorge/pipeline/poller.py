"""Feed polling stage."""

import asyncio
import time
from typing import Callable, List, Optional, Tuple

from autogeorge.core.config import Config
from autogeorge.core.feed import Source
from autogeorge.core.results import PollResult
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.database.source_repository import SourceRepository
from autogeorge.pipeline.collectors import BaseCollector, create_collector
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

CollectorFactory = Callable[[Source, Config], BaseCollector]


class FeedPoller:
    """Fetches active sources and stores new feed items.

    Sources are polled in small concurrent batches with a pause between
    batches. New items are only stored; generation picks them up on its own
    schedule.
    """

    def __init__(
        self,
        config: Config,
        db: DatabaseConnection,
        collector_factory: Optional[CollectorFactory] = None,
    ):
        """Initialize poller.

        Args:
            config: Application configuration.
            db: Database connection.
            collector_factory: Builds the collector for a source.
        """
        self.config = config
        self.sources = SourceRepository(db)
        self.feed_items = FeedItemRepository(db)
        self.collector_factory = collector_factory or create_collector

    async def run(self) -> PollResult:
        """Poll all pollable sources once.

        Returns:
            PollResult with per-run counters.
        """
        started = time.perf_counter()
        logger.info("stage_poll_feeds_starting")

        sources = self.sources.get_pollable(self.config.poll_max_sources)
        result = PollResult(total_sources=len(sources))

        batch_size = self.config.poll_batch_size
        for start in range(0, len(sources), batch_size):
            batch = sources[start : start + batch_size]
            outcomes = await asyncio.gather(*(self._poll_source(s) for s in batch))

            for source, (new_items, duplicates, error) in zip(batch, outcomes):
                if error is None:
                    result.successful_polls += 1
                    result.new_items_found += new_items
                    result.duplicates_skipped += duplicates
                else:
                    result.failed_polls += 1
                    result.errors.append(f"{source.name}: {error}")

            if start + batch_size < len(sources) and self.config.poll_batch_delay_sec > 0:
                await asyncio.sleep(self.config.poll_batch_delay_sec)

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "stage_poll_feeds_complete",
            sources=result.total_sources,
            successful=result.successful_polls,
            failed=result.failed_polls,
            new_items=result.new_items_found,
            duplicates=result.duplicates_skipped,
        )
        return result

    async def poll_one(self, source: Source) -> PollResult:
        """Poll a single source now, outside the scheduled run."""
        started = time.perf_counter()
        new_items, duplicates, error = await self._poll_source(source)
        result = PollResult(total_sources=1)
        if error is None:
            result.successful_polls = 1
            result.new_items_found = new_items
            result.duplicates_skipped = duplicates
        else:
            result.failed_polls = 1
            result.errors.append(f"{source.name}: {error}")
        result.duration_ms = int((time.perf_counter() - started) * 1000)
        return result

    async def _poll_source(self, source: Source) -> Tuple[int, int, Optional[str]]:
        """Fetch one source and store its new entries.

        Returns:
            (new items, duplicates, error message or None)
        """
        try:
            collector = self.collector_factory(source, self.config)
            entries = await collector.collect()
        except Exception as e:
            logger.warning("poll_source_failed", source_name=source.name, error=str(e))
            self.sources.record_fetch_failure(source.id, str(e))
            return 0, 0, str(e)

        new_items: List[str] = []
        duplicates = 0
        for entry in entries:
            item = self.feed_items.insert_if_new(source.id, entry)
            if item is None:
                duplicates += 1
            else:
                new_items.append(item.id)

        self.sources.record_fetch_success(source.id)
        logger.info(
            "poll_source_complete",
            source_name=source.name,
            entries=len(entries),
            new_items=len(new_items),
            duplicates=duplicates,
        )
        return len(new_items), duplicates, None
