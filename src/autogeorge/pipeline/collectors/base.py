"""Base collector interface."""

from abc import ABC, abstractmethod
from typing import List

from autogeorge.core.feed import FeedEntry, Source


class BaseCollector(ABC):
    """Abstract base class for feed collectors."""

    def __init__(self, source: Source, max_items: int = 10):
        """Initialize collector with its source.

        Args:
            source: Source with URL, type and status.
            max_items: Maximum number of entries returned per fetch.
        """
        self.source = source
        self.max_items = max_items

    @abstractmethod
    async def collect(self) -> List[FeedEntry]:
        """Collect entries from the source.

        Returns:
            List of parsed feed entries, newest as published by the feed.

        Raises:
            CollectorError: If collection fails.
        """
        pass
