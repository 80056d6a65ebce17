"""Article generation stage (feed item -> article)."""

import time
from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from autogeorge.core.article import Article, GeneratedArticle
from autogeorge.core.config import Config, PromptConfig
from autogeorge.core.feed import FeedItem
from autogeorge.core.results import GenerationResult
from autogeorge.core.site import AutomationSettings, GenerationSettings
from autogeorge.core.workflow import initial_status
from autogeorge.database.article_repository import ArticleRepository
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.integrations.provider_factory import LLMClient
from autogeorge.services.config_loader import load_prompt_config
from autogeorge.utils.date_utils import now_utc
from autogeorge.utils.exceptions import GenerationError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


def build_user_prompt(
    template: PromptConfig,
    item: FeedItem,
    settings: GenerationSettings,
) -> str:
    """Fill the generation template for one feed item."""
    return template.user_prompt_template.format(
        title=item.title,
        content=item.content or item.title,
        url_line=f"URL originale: {item.url}" if item.url else "",
        published_at=item.published_at.isoformat() if item.published_at else "N/D",
        language=settings.language,
        tone=settings.tone,
        style=settings.style,
        target_audience=settings.target_audience,
    )


class ArticleGenerator:
    """Turns pending feed items into articles with an LLM.

    One implementation serves both entry points: the manual batch run
    (`run_batch`) and the flag-gated automatic run (`run_auto`). Each item
    is claimed before the LLM call, and the article insert and the item
    link are committed together, so an item either ends up consumed by
    exactly one article or untouched.
    """

    def __init__(
        self,
        config: Config,
        db: DatabaseConnection,
        llm_client: LLMClient,
        prompt_config: Optional[PromptConfig] = None,
    ):
        """Initialize generator.

        Args:
            config: Application configuration.
            db: Database connection.
            llm_client: Chat client used for generation.
            prompt_config: Generation prompt; loaded from YAML when omitted.
        """
        self.config = config
        self.llm_client = llm_client
        self.prompt_config = prompt_config or load_prompt_config("article_generation")
        self.feed_items = FeedItemRepository(db)
        self.articles = ArticleRepository(db)

    async def run_batch(
        self,
        settings: Optional[AutomationSettings],
        generation_settings: Optional[GenerationSettings] = None,
    ) -> GenerationResult:
        """Manual generation over the oldest unprocessed items.

        Items whose source is no longer active are skipped and stay pending.
        Articles from this entry point carry no generation config, so the
        automatic publisher leaves them alone.
        """
        started = time.perf_counter()
        logger.info("stage_generate_articles_starting")

        settings = settings or AutomationSettings()
        generation_settings = generation_settings or GenerationSettings()
        items = self.feed_items.get_pending(
            self.config.generate_batch_size, self._stale_before(), active_sources_only=True
        )
        result = GenerationResult(total_items=len(items))
        # Items of paused sources stay pending without holding up the queue
        result.skipped = self.feed_items.count_pending_inactive()

        for item in items:
            await self._process_item(item, settings, generation_settings, result, auto=False)

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "stage_generate_articles_complete",
            total=result.total_items,
            successful=result.successful,
            failed=result.failed,
            skipped=result.skipped,
        )
        return result

    async def run_auto(
        self,
        settings: Optional[AutomationSettings],
        generation_settings: Optional[GenerationSettings] = None,
    ) -> GenerationResult:
        """Automatic generation, gated by the site's auto-generation flag."""
        started = time.perf_counter()
        logger.info("stage_auto_generation_starting")

        if settings is None or not settings.enable_auto_generation:
            logger.info("stage_auto_generation_disabled")
            return GenerationResult(message="Auto generation disabled or no active site")

        generation_settings = generation_settings or GenerationSettings()
        items = self.feed_items.get_pending(
            self.config.auto_generation_batch_size, self._stale_before()
        )
        result = GenerationResult(total_items=len(items))

        for item in items:
            await self._process_item(item, settings, generation_settings, result, auto=True)

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "stage_auto_generation_complete",
            total=result.total_items,
            successful=result.successful,
            failed=result.failed,
        )
        return result

    async def generate_item(
        self,
        item: FeedItem,
        settings: Optional[AutomationSettings],
        generation_settings: Optional[GenerationSettings] = None,
    ) -> GenerationResult:
        """Generate the article for one feed item on request.

        Goes through the same claim as the batch runs; the article gets no
        generation config, like the manual batch.
        """
        result = GenerationResult(total_items=1)
        await self._process_item(
            item,
            settings or AutomationSettings(),
            generation_settings or GenerationSettings(),
            result,
            auto=False,
        )
        logger.info(
            "feed_item_generated_on_request",
            item_id=item.id,
            successful=result.successful,
            skipped=result.skipped,
        )
        return result

    async def generate(
        self, item: FeedItem, generation_settings: GenerationSettings
    ) -> GeneratedArticle:
        """Ask the LLM for an article based on a feed item.

        Raises:
            GenerationError: If the reply is missing a title or content.
            AIServiceError: If the API call fails.
        """
        messages = [
            {"role": "system", "content": self.prompt_config.system_prompt},
            {
                "role": "user",
                "content": build_user_prompt(self.prompt_config, item, generation_settings),
            },
        ]
        # The configured model name is a Perplexity model; other providers use their default
        model = generation_settings.model if self.llm_client.provider == "perplexity" else None

        response = await self.llm_client.create_completion(
            messages=messages,
            module="generator",
            request_type="article",
            model=model,
            response_format=GeneratedArticle,
            temperature=generation_settings.temperature,
            max_tokens=generation_settings.max_tokens,
        )

        try:
            return GeneratedArticle.model_validate(response["content"])
        except PydanticValidationError as e:
            raise GenerationError(f"Incomplete article from model: {e.error_count()} invalid fields") from e

    async def _process_item(
        self,
        item: FeedItem,
        settings: AutomationSettings,
        generation_settings: GenerationSettings,
        result: GenerationResult,
        auto: bool,
    ) -> None:
        token = uuid4().hex
        if not self.feed_items.claim(item.id, token, self._stale_before()):
            logger.info("feed_item_already_claimed", item_id=item.id)
            result.skipped += 1
            return

        try:
            generated = await self.generate(item, generation_settings)
            article = Article(
                id=uuid4().hex,
                title=generated.title,
                content=generated.content,
                status=initial_status(settings),
                source_id=item.source_id,
                site_id=settings.site_id,
                meta_description=generated.meta_description,
                seo_tags=generated.seo_tags,
                generation_config=(
                    self._generation_config(generation_settings) if auto else None
                ),
            )
            stored = self.articles.create_from_feed_item(article, item.id, token)
        except Exception as e:
            logger.warning("generation_failed", item_id=item.id, title=item.title, error=str(e))
            self.feed_items.release_claim(item.id, token)
            result.record_failure(item.title, e)
            return

        result.record_success()
        result.article_ids.append(stored.id)

    def _generation_config(self, generation_settings: GenerationSettings) -> Dict[str, Any]:
        return {
            "provider": self.llm_client.provider,
            "model": (
                generation_settings.model
                if self.llm_client.provider == "perplexity"
                else getattr(self.llm_client, "default_model", None)
            ),
            "settings": generation_settings.model_dump(),
            "generated_at": now_utc().isoformat(),
        }

    def _stale_before(self):
        return now_utc() - timedelta(seconds=self.config.claim_ttl_sec)
