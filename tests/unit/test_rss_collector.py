# tests/unit/test_rss_collector.py
"""Unit tests for RSS parsing and fetching."""

from datetime import datetime, timezone

import feedparser
import httpx
import pytest

from autogeorge.core.config import Config
from autogeorge.core.enums import SourceType
from autogeorge.core.feed import Source
from autogeorge.pipeline.collectors import RSSCollector, create_collector, parse_entries
from autogeorge.utils.exceptions import CollectorError


@pytest.fixture
def rss_source() -> Source:
    return Source(id="src-1", name="Test Feed", url="https://example.com/feed.xml")


@pytest.mark.unit
class TestParseEntries:
    """Tests for parse_entries."""

    def test_parses_sample_feed(self, sample_rss_feed):
        """Should map feed entries to FeedEntry models."""
        entries = parse_entries(feedparser.parse(sample_rss_feed).entries)

        assert len(entries) == 2
        first = entries[0]
        assert first.title == "Nuovo processore AI presentato a Milano"
        assert first.link == "https://example.com/article-1"
        assert first.guid == "https://example.com/article-1"
        assert first.content == "Una startup milanese lancia un chip."
        assert first.published_at == datetime(2026, 1, 4, 10, 0, tzinfo=timezone.utc)

    def test_guid_falls_back_to_link(self, sample_rss_feed):
        """Should use the link when the entry has no guid."""
        second = parse_entries(feedparser.parse(sample_rss_feed).entries)[1]
        assert second.guid == "https://example.com/article-2"

    def test_guid_falls_back_to_title(self):
        """Should use the title when there is neither guid nor link."""
        entries = parse_entries([{"title": "Solo titolo"}])
        assert entries[0].guid == "Solo titolo"
        assert entries[0].link is None

    def test_skips_entries_without_title(self):
        """Should drop entries without a title."""
        entries = parse_entries([{"title": "", "link": "https://example.com/x"}, {"title": "Ok"}])
        assert [e.title for e in entries] == ["Ok"]

    def test_prefers_full_content(self):
        """Should prefer content over summary."""
        raw = {"title": "T", "content": [{"value": "<p>Testo completo</p>"}], "summary": "Breve"}
        assert parse_entries([raw])[0].content == "Testo completo"

    def test_date_fallbacks(self):
        """Should fall back to the updated date."""
        raw = {"title": "T", "updated": "2026-01-05T08:00:00Z"}
        assert parse_entries([raw])[0].published_at == datetime(2026, 1, 5, 8, 0, tzinfo=timezone.utc)

    def test_unparseable_date(self):
        """Should leave published_at empty for a bad date."""
        assert parse_entries([{"title": "T", "published": "ieri"}])[0].published_at is None

    def test_max_items(self):
        """Should keep at most max_items entries."""
        raw = [{"title": f"Notizia {i}"} for i in range(15)]
        assert len(parse_entries(raw, max_items=10)) == 10


@pytest.mark.unit
class TestRSSCollector:
    """Tests for RSSCollector over a mocked transport."""

    @pytest.mark.asyncio
    async def test_collect(self, rss_source, sample_rss_feed):
        """Should fetch with the bot User-Agent and parse entries."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["user_agent"] = request.headers["User-Agent"]
            return httpx.Response(200, text=sample_rss_feed)

        collector = RSSCollector(rss_source, transport=httpx.MockTransport(handler))
        entries = await collector.collect()

        assert len(entries) == 2
        assert seen["user_agent"] == "AutoGeorge RSS Bot/1.0"

    @pytest.mark.asyncio
    async def test_http_error(self, rss_source):
        """Should raise CollectorError on an HTTP error status."""
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        with pytest.raises(CollectorError, match="HTTP 404"):
            await RSSCollector(rss_source, transport=transport).collect()

    @pytest.mark.asyncio
    async def test_invalid_feed(self, rss_source):
        """Should raise CollectorError when nothing can be parsed."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="not a feed"))
        with pytest.raises(CollectorError, match="Invalid feed"):
            await RSSCollector(rss_source, transport=transport).collect()

    @pytest.mark.asyncio
    async def test_missing_url(self):
        """Should raise CollectorError for a source without URL."""
        source = Source(id="src-2", name="No URL")
        with pytest.raises(CollectorError, match="has no URL"):
            await RSSCollector(source).collect()


@pytest.mark.unit
class TestCreateCollector:
    """Tests for create_collector."""

    def test_rss_uses_config_limits(self, rss_source):
        """Should build an RSS collector with the configured limits."""
        config = Config(_env_file=None, request_timeout_sec=5, max_items_per_feed=3)
        collector = create_collector(rss_source, config)
        assert isinstance(collector, RSSCollector)
        assert collector.timeout == 5
        assert collector.max_items == 3

    def test_unsupported_type(self):
        """Should reject source types without a collector."""
        source = Source(id="src-3", name="Canale", type=SourceType.TELEGRAM)
        with pytest.raises(CollectorError, match="Unsupported source type"):
            create_collector(source, Config(_env_file=None))
