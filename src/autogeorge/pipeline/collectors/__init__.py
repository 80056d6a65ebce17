"""Feed collectors for different source types."""

from typing import Optional

import httpx

from autogeorge.core.config import Config
from autogeorge.core.enums import SourceType
from autogeorge.core.feed import Source
from autogeorge.pipeline.collectors.base import BaseCollector
from autogeorge.pipeline.collectors.rss import RSSCollector, parse_entries
from autogeorge.utils.exceptions import CollectorError

__all__ = [
    "BaseCollector",
    "RSSCollector",
    "create_collector",
    "parse_entries",
]


def create_collector(
    source: Source,
    config: Config,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseCollector:
    """Factory function to create the collector for a source type.

    Args:
        source: Source to collect from.
        config: Application configuration (timeouts, limits, user agent).
        transport: Optional httpx transport passed to HTTP collectors.

    Returns:
        Collector instance for the source type.

    Raises:
        CollectorError: If source type is not supported.
    """
    if source.type == SourceType.RSS:
        return RSSCollector(
            source,
            timeout=config.request_timeout_sec,
            max_items=config.max_items_per_feed,
            user_agent=config.feed_user_agent,
            transport=transport,
        )
    raise CollectorError(f"Unsupported source type: {source.type.value}")
