# tests/integration/test_poller.py
"""Integration tests for the feed polling stage."""

import httpx
import pytest

from autogeorge.core.enums import FetchStatus
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.database.source_repository import SourceRepository
from autogeorge.pipeline.collectors import create_collector
from autogeorge.pipeline.poller import FeedPoller
from autogeorge.utils.date_utils import now_utc


def _collector_factory(responses):
    """Collector factory serving feeds by URL through httpx.MockTransport."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, body = responses[str(request.url)]
        return httpx.Response(status, text=body)

    transport = httpx.MockTransport(handler)
    return lambda source, config: create_collector(source, config, transport=transport)


@pytest.mark.integration
class TestFeedPoller:
    """Tests for FeedPoller."""

    @pytest.mark.asyncio
    async def test_stores_new_items(self, test_config, test_db, source, sample_rss_feed):
        """Should store new entries and stamp the source."""
        factory = _collector_factory({source.url: (200, sample_rss_feed)})

        result = await FeedPoller(test_config, test_db, collector_factory=factory).run()

        assert result.total_sources == 1
        assert result.successful_polls == 1
        assert result.new_items_found == 2
        assert result.duplicates_skipped == 0

        pending = FeedItemRepository(test_db).get_pending(10, now_utc())
        assert {item.title for item in pending} == {
            "Nuovo processore AI presentato a Milano",
            "Borsa di Milano in rialzo",
        }
        stored = SourceRepository(test_db).get(source.id)
        assert stored.last_fetch_status == FetchStatus.SUCCESS
        assert stored.last_fetch_at is not None

    @pytest.mark.asyncio
    async def test_second_poll_finds_duplicates(
        self, test_config, test_db, source, sample_rss_feed
    ):
        """Should skip entries stored by an earlier poll."""
        factory = _collector_factory({source.url: (200, sample_rss_feed)})
        poller = FeedPoller(test_config, test_db, collector_factory=factory)

        await poller.run()
        result = await poller.run()

        assert result.new_items_found == 0
        assert result.duplicates_skipped == 2
        assert FeedItemRepository(test_db).count() == 2

    @pytest.mark.asyncio
    async def test_failing_source_does_not_stop_others(
        self, test_config, test_db, source, sample_rss_feed
    ):
        """Should record a failed source and keep polling the rest."""
        broken = SourceRepository(test_db).create(
            name="Feed rotto", url="https://broken.example.com/rss"
        )
        factory = _collector_factory(
            {
                source.url: (200, sample_rss_feed),
                broken.url: (503, "Service Unavailable"),
            }
        )

        result = await FeedPoller(test_config, test_db, collector_factory=factory).run()

        assert result.successful_polls == 1
        assert result.failed_polls == 1
        assert result.new_items_found == 2
        assert result.errors[0].startswith("Feed rotto: HTTP 503")

        stored = SourceRepository(test_db).get(broken.id)
        assert stored.last_fetch_status == FetchStatus.ERROR
        assert "503" in stored.last_error

    @pytest.mark.asyncio
    async def test_no_sources(self, test_config, test_db):
        """Should finish cleanly with nothing to poll."""
        result = await FeedPoller(test_config, test_db).run()
        assert result.total_sources == 0
        assert result.errors == []
