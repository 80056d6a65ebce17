# tests/integration/test_orchestrator.py
"""Integration tests for the stage runner and the end-to-end automation flow."""

import httpx
import pytest

from autogeorge.core.enums import PipelineStage
from autogeorge.database.article_repository import ArticleRepository
from autogeorge.database.pipeline_repository import LeaseRepository, RunRepository
from autogeorge.pipeline.collectors import create_collector
from autogeorge.pipeline.orchestrator import StageRunner, stage_names
from autogeorge.utils.exceptions import ConfigurationError, StageLockedError


@pytest.fixture
def runner(test_config, test_db, mock_llm_client, mock_image_client, wordpress, sample_rss_feed):
    """Runner wired to fake feeds, LLM, image API and WordPress."""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=sample_rss_feed))
    return StageRunner(
        test_config,
        test_db,
        generation_client=mock_llm_client,
        image_client=mock_image_client,
        collector_factory=lambda source, config: create_collector(
            source, config, transport=transport
        ),
        wordpress_client_factory=lambda site: wordpress,
    )


@pytest.mark.integration
class TestStageRunner:
    """Tests for StageRunner."""

    @pytest.mark.asyncio
    async def test_run_recorded(self, runner, test_db, source):
        """Should record a completed run with its hand-off count."""
        results = await runner.run_stage("poll-feeds")

        assert results["new_items_found"] == 2
        [run] = RunRepository(test_db).recent(stage="poll-feeds")
        assert run["status"] == "completed"
        assert run["pending_items"] == 2
        assert run["stats"]["successful_polls"] == 1
        # Lease released after the run
        assert LeaseRepository(test_db).holder("poll-feeds") is None

    @pytest.mark.asyncio
    async def test_locked_stage(self, runner, test_db):
        """Should refuse to run a stage another invocation holds."""
        LeaseRepository(test_db).acquire("auto-image", "other-run", ttl_seconds=600)

        with pytest.raises(StageLockedError) as exc_info:
            await runner.run_stage(PipelineStage.AUTO_IMAGE)

        assert exc_info.value.holder == "other-run"
        assert RunRepository(test_db).recent(stage="auto-image") == []
        # Other stages are unaffected
        await runner.run_stage(PipelineStage.AUTO_PUBLISH)

    @pytest.mark.asyncio
    async def test_stage_failure_recorded(self, test_config, test_db, make_site, make_feed_item):
        """Should record the failure and release the lease when a stage raises."""
        test_config.perplexity_api_key = None
        make_site()
        make_feed_item()
        runner = StageRunner(test_config, test_db)

        with pytest.raises(ConfigurationError):
            await runner.run_stage("auto-generation")

        [run] = RunRepository(test_db).recent(stage="auto-generation")
        assert run["status"] == "failed"
        assert "No LLM client" in run["error_message"]
        assert LeaseRepository(test_db).holder("auto-generation") is None

    @pytest.mark.asyncio
    async def test_auto_generation_without_site(self, test_config, test_db, make_feed_item):
        """Should be a no-op without an active site, even without API keys."""
        test_config.perplexity_api_key = None
        make_feed_item()

        results = await StageRunner(test_config, test_db).run_stage("auto-generation")

        assert results["processed"] == 0
        assert results["message"]

    @pytest.mark.asyncio
    async def test_unknown_stage(self, runner):
        """Should reject unknown stage names."""
        with pytest.raises(ValueError):
            await runner.run_stage("rebuild-everything")

    @pytest.mark.asyncio
    async def test_health_stages(self, runner, test_db):
        """Should run health monitor and report through the runner."""
        monitor = await runner.run_stage("health-monitor")
        report = await runner.run_stage("health-report")

        assert monitor["overall"] == "healthy"
        assert report["total_checks"] == 4

    def test_stage_names(self):
        """Should list every cron route."""
        assert stage_names() == [
            "poll-feeds",
            "generate-articles",
            "auto-generation",
            "auto-image",
            "auto-publish",
            "health-monitor",
            "health-report",
        ]


@pytest.mark.integration
class TestAutomationFlow:
    """Feed item to WordPress post through the scheduled stages."""

    @pytest.mark.asyncio
    async def test_run_all_with_images(self, runner, test_db, source, make_site, wordpress):
        """Should take feed items all the way to published posts."""
        make_site(enable_auto_publish=True)

        summary = await runner.run_all()

        assert list(summary) == ["poll-feeds", "auto-generation", "auto-image", "auto-publish"]
        assert summary["poll-feeds"]["new_items_found"] == 2
        assert summary["auto-generation"]["successful"] == 2
        assert summary["auto-image"]["successful"] == 2
        assert summary["auto-publish"]["published"] == 2

        assert ArticleRepository(test_db).count_by_status() == {"published": 2}
        assert len(wordpress.posts) == 2
        assert all(post["featured_media"] for post in wordpress.posts)

    @pytest.mark.asyncio
    async def test_images_without_auto_publish(self, runner, test_db, source, make_site, wordpress):
        """Should stop at generated_with_image when auto-publish is off."""
        make_site(enable_auto_publish=False)

        summary = await runner.run_all()

        assert summary["auto-publish"]["published"] == 0
        assert ArticleRepository(test_db).count_by_status() == {"generated_with_image": 2}
        assert wordpress.posts == []

    @pytest.mark.asyncio
    async def test_manual_generation_not_published(
        self, runner, test_db, source, make_site, wordpress
    ):
        """Should leave manually generated articles to the editor."""
        make_site(enable_featured_image=False, enable_auto_publish=True)
        await runner.run_stage("poll-feeds")

        await runner.run_stage("generate-articles")
        await runner.run_stage("auto-publish")

        assert ArticleRepository(test_db).count_by_status() == {"ready_to_publish": 2}
        assert wordpress.posts == []
