"""Stage runner: leases, run bookkeeping and settings for each cron stage."""

import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional

from autogeorge.core.config import Config
from autogeorge.core.enums import ImageMode, PipelineStage, RunStatus
from autogeorge.core.feed import FeedItem, Source
from autogeorge.core.results import GenerationResult
from autogeorge.core.site import AutomationSettings, GenerationSettings
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.pipeline_repository import LeaseRepository, RunRepository
from autogeorge.database.site_repository import SiteRepository
from autogeorge.integrations.provider_factory import ImageClient, LLMClient, ProviderFactory
from autogeorge.pipeline.collectors import BaseCollector
from autogeorge.pipeline.generator import ArticleGenerator
from autogeorge.pipeline.images.search import ImageSearchService
from autogeorge.pipeline.images.stage import ImageStage
from autogeorge.pipeline.poller import FeedPoller
from autogeorge.pipeline.publisher import Publisher, WordPressClientFactory
from autogeorge.services.email_service import ResendEmailService
from autogeorge.services.health_service import HealthService
from autogeorge.utils.exceptions import StageLockedError
from autogeorge.utils.logging import bind_run_context, clear_run_context, get_logger

logger = get_logger(__name__)

StageBody = Callable[[Optional[AutomationSettings], str], Awaitable[Dict[str, Any]]]

# Order used by run_all
AUTOMATION_SEQUENCE = (
    PipelineStage.POLL_FEEDS,
    PipelineStage.AUTO_GENERATION,
    PipelineStage.AUTO_IMAGE,
    PipelineStage.AUTO_PUBLISH,
)


class StageRunner:
    """Runs pipeline stages one invocation at a time.

    Each invocation reads the active site's automation flags once, holds the
    stage lease for its duration and records a pipeline_runs row. Stages
    never call each other; a run's `pending_items` tells how much work it
    left for the next stage's own schedule.
    """

    def __init__(
        self,
        config: Config,
        db: DatabaseConnection,
        generation_client: Optional[LLMClient] = None,
        search_client: Optional[LLMClient] = None,
        image_client: Optional[ImageClient] = None,
        collector_factory: Optional[Callable[..., BaseCollector]] = None,
        wordpress_client_factory: Optional[WordPressClientFactory] = None,
        email_service: Optional[ResendEmailService] = None,
    ):
        """Initialize runner.

        Clients left as None are built from the configuration on first use.

        Args:
            config: Application configuration.
            db: Database connection.
            generation_client: Chat client for article generation.
            search_client: Chat client for image search queries.
            image_client: Image generation client.
            collector_factory: Builds feed collectors (tests inject fakes).
            wordpress_client_factory: Builds WordPress clients.
            email_service: Mail sender for health reports.
        """
        self.config = config
        self.db = db
        self.sites = SiteRepository(db)
        self.leases = LeaseRepository(db)
        self.runs = RunRepository(db)
        self.generation_client = generation_client
        self.search_client = search_client
        self.image_client = image_client
        self.collector_factory = collector_factory
        self.wordpress_client_factory = wordpress_client_factory
        self.email_service = email_service

        self._stages: Dict[PipelineStage, StageBody] = {
            PipelineStage.POLL_FEEDS: self._poll_feeds,
            PipelineStage.GENERATE_ARTICLES: self._generate_articles,
            PipelineStage.AUTO_GENERATION: self._auto_generation,
            PipelineStage.AUTO_IMAGE: self._auto_image,
            PipelineStage.AUTO_PUBLISH: self._auto_publish,
            PipelineStage.HEALTH_MONITOR: self._health_monitor,
            PipelineStage.HEALTH_REPORT: self._health_report,
        }

    def automation_settings(self) -> Optional[AutomationSettings]:
        """Flags of the active site, None when no site is active."""
        site = self.sites.get_active()
        return site.automation_settings() if site else None

    async def run_stage(self, stage: PipelineStage | str) -> Dict[str, Any]:
        """Run one stage under its lease.

        Args:
            stage: Stage or its route name (e.g. "auto-image").

        Returns:
            The stage's result as a dict.

        Raises:
            StageLockedError: If another invocation of the stage is running.
            ValueError: If the stage name is unknown.
        """
        stage = PipelineStage(stage)
        run_id = self._generate_run_id()
        if not self.leases.acquire(stage.value, run_id, self.config.stage_lease_ttl_sec):
            raise StageLockedError(stage.value, self.leases.holder(stage.value))

        bind_run_context(run_id=run_id, stage=stage.value)
        try:
            self.runs.start(run_id, stage.value)
            settings = self.automation_settings()
            try:
                results = await self._stages[stage](settings, run_id)
            except Exception as e:
                logger.error("stage_failed", error=str(e))
                self.runs.complete(run_id, RunStatus.FAILED, error_message=str(e))
                raise

            self.runs.complete(
                run_id,
                RunStatus.COMPLETED,
                stats=results,
                pending_items=results.get("pending_items", 0),
            )
            return results
        finally:
            self.leases.release(stage.value, run_id)
            clear_run_context()

    async def run_all(self) -> Dict[str, Dict[str, Any]]:
        """Run poll, auto-generation, auto-image and auto-publish in order.

        Each stage still selects only rows in its own precondition state, so
        this is equivalent to the cron schedule firing them back to back.
        """
        summary: Dict[str, Dict[str, Any]] = {}
        for stage in AUTOMATION_SEQUENCE:
            summary[stage.value] = await self.run_stage(stage)
        return summary

    # Manual triggers; single rows are guarded by their own claims, not a stage lease

    async def poll_source(self, source: Source) -> Dict[str, Any]:
        """Poll one source now."""
        poller = FeedPoller(self.config, self.db, collector_factory=self.collector_factory)
        result = await poller.poll_one(source)
        return result.model_dump()

    async def generate_feed_item(self, item: FeedItem) -> Dict[str, Any]:
        """Generate the article for one feed item now."""
        settings = self.automation_settings()
        run_id = self._generate_run_id()
        generator = ArticleGenerator(self.config, self.db, self._generation_client(run_id))
        result = await generator.generate_item(item, settings, self._generation_settings(settings))
        return result.model_dump()

    # Stage bodies

    async def _poll_feeds(self, settings: Optional[AutomationSettings], run_id: str) -> Dict[str, Any]:
        poller = FeedPoller(self.config, self.db, collector_factory=self.collector_factory)
        result = await poller.run()
        return {**result.model_dump(), "pending_items": result.new_items_found}

    async def _generate_articles(
        self, settings: Optional[AutomationSettings], run_id: str
    ) -> Dict[str, Any]:
        generator = ArticleGenerator(self.config, self.db, self._generation_client(run_id))
        result = await generator.run_batch(settings, self._generation_settings(settings))
        return {**result.model_dump(), "pending_items": result.successful}

    async def _auto_generation(
        self, settings: Optional[AutomationSettings], run_id: str
    ) -> Dict[str, Any]:
        if settings is None or not settings.enable_auto_generation:
            # Skip client construction; no API key is needed for a no-op
            logger.info("stage_auto_generation_disabled")
            return GenerationResult(message="Auto generation disabled or no active site").model_dump()
        generator = ArticleGenerator(self.config, self.db, self._generation_client(run_id))
        result = await generator.run_auto(settings, self._generation_settings(settings))
        return {**result.model_dump(), "pending_items": result.successful}

    async def _auto_image(self, settings: Optional[AutomationSettings], run_id: str) -> Dict[str, Any]:
        factory = ProviderFactory(self.config, self.db, run_id)
        image_client = self.image_client or factory.get_image_client()
        search_service = None
        if self.config.image_mode == ImageMode.SEARCH:
            search_client = self.search_client
            if search_client is None and self.config.perplexity_api_key:
                search_client = factory.get_search_client()
            search_service = ImageSearchService(self.config, search_client, image_client)
        stage = ImageStage(self.config, self.db, image_client, search_service=search_service)
        result = await stage.run(settings, self._generation_settings(settings))
        return {**result.model_dump(), "pending_items": result.successful}

    async def _auto_publish(self, settings: Optional[AutomationSettings], run_id: str) -> Dict[str, Any]:
        publisher = Publisher(self.config, self.db, client_factory=self.wordpress_client_factory)
        result = await publisher.run(settings)
        return result.model_dump()

    async def _health_monitor(self, settings: Optional[AutomationSettings], run_id: str) -> Dict[str, Any]:
        return HealthService(self.config, self.db).monitor()

    async def _health_report(self, settings: Optional[AutomationSettings], run_id: str) -> Dict[str, Any]:
        service = HealthService(self.config, self.db, email_service=self.email_service)
        return await service.report()

    # Helpers

    def _generation_client(self, run_id: str) -> LLMClient:
        if self.generation_client is not None:
            return self.generation_client
        return ProviderFactory(self.config, self.db, run_id).get_generation_client()

    def _generation_settings(self, settings: Optional[AutomationSettings]) -> GenerationSettings:
        return self.sites.get_generation_settings(settings.site_id if settings else None)

    def _generate_run_id(self) -> str:
        """Generate unique run ID (timestamp + short UUID)."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        short_uuid = str(uuid.uuid4())[:8]
        return f"{timestamp}_{short_uuid}"


def stage_names() -> List[str]:
    """Route names of all cron stages."""
    return [stage.value for stage in PipelineStage]
