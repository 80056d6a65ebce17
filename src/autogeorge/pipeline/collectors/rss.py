"""RSS feed collector."""

from typing import Any, List, Optional

import feedparser
import httpx

from autogeorge.core.feed import FeedEntry, Source
from autogeorge.pipeline.collectors.base import BaseCollector
from autogeorge.utils.date_utils import parse_date
from autogeorge.utils.exceptions import CollectorError
from autogeorge.utils.logging import get_logger
from autogeorge.utils.text_utils import strip_html

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "AutoGeorge RSS Bot/1.0"


class RSSCollector(BaseCollector):
    """Collector for RSS and Atom feeds."""

    def __init__(
        self,
        source: Source,
        timeout: float = 10.0,
        max_items: int = 10,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize RSS collector.

        Args:
            source: Source to fetch.
            timeout: HTTP request timeout in seconds.
            max_items: Maximum number of entries kept per fetch.
            user_agent: User-Agent header sent to the origin.
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        super().__init__(source, max_items)
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport

    async def collect(self) -> List[FeedEntry]:
        """Collect entries from the RSS feed.

        Returns:
            List of feed entries from the feed.

        Raises:
            CollectorError: If RSS feed fetch or parse fails.
        """
        logger.info("collecting_rss", source_name=self.source.name, feed_url=self.source.url)

        if not self.source.url:
            raise CollectorError(f"Source {self.source.name} has no URL")

        feed_content = await self._fetch_feed()
        feed = feedparser.parse(feed_content)

        if feed.bozo:
            if not feed.entries:
                raise CollectorError(
                    f"Invalid feed from {self.source.url}: {getattr(feed, 'bozo_exception', 'parse error')}"
                )
            logger.warning(
                "rss_parse_warning",
                source_name=self.source.name,
                exception=str(getattr(feed, "bozo_exception", "")),
            )

        entries = parse_entries(feed.entries, self.max_items)
        logger.info(
            "rss_collection_complete",
            source_name=self.source.name,
            entries_collected=len(entries),
        )
        return entries

    async def _fetch_feed(self) -> str:
        """Fetch RSS feed content via HTTP.

        Raises:
            CollectorError: If HTTP request fails.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
                transport=self._transport,
            ) as client:
                response = await client.get(self.source.url)
                response.raise_for_status()
                return response.text
        except httpx.TimeoutException as e:
            raise CollectorError(f"Timeout after {self.timeout}s fetching {self.source.url}") from e
        except httpx.HTTPStatusError as e:
            raise CollectorError(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise CollectorError(f"HTTP request failed for {self.source.url}: {e}") from e


def parse_entries(raw_entries: List[Any], max_items: int = 10) -> List[FeedEntry]:
    """Convert feedparser entries into FeedEntry models.

    Entries without a title are dropped. The guid falls back to the link,
    then to the title.

    Args:
        raw_entries: `feed.entries` from feedparser.
        max_items: Maximum number of entries returned.

    Returns:
        Parsed entries in feed order.
    """
    entries: List[FeedEntry] = []
    for raw in raw_entries:
        if len(entries) >= max_items:
            break

        title = strip_html(raw.get("title", ""))
        if not title:
            logger.debug("rss_entry_no_title", link=raw.get("link"))
            continue

        link = raw.get("link") or None
        guid = raw.get("id") or link or title

        content = None
        if raw.get("content"):
            content = raw["content"][0].get("value")
        if not content:
            content = raw.get("summary") or raw.get("description")
        if content:
            content = strip_html(content) or None

        published_at = None
        for key in ("published", "updated", "created"):
            if raw.get(key):
                published_at = parse_date(raw[key])
                if published_at:
                    break

        entries.append(
            FeedEntry(
                title=title,
                link=link,
                guid=guid,
                content=content,
                published_at=published_at,
            )
        )

    return entries
