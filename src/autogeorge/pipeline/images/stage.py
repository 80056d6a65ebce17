"""Featured image stage."""

import asyncio
import time
from datetime import timedelta
from typing import Optional
from uuid import uuid4

from autogeorge.core.article import Article
from autogeorge.core.config import Config, PromptConfig
from autogeorge.core.enums import ArticleStatus, ImageMode
from autogeorge.core.image import ImagePrompt
from autogeorge.core.results import ImageStageResult
from autogeorge.core.site import AutomationSettings, GenerationSettings
from autogeorge.core.workflow import post_image_status
from autogeorge.database.article_repository import ArticleRepository, ImagePromptRepository
from autogeorge.database.connection import DatabaseConnection
from autogeorge.integrations.provider_factory import ImageClient
from autogeorge.pipeline.images.prompt import build_image_prompt
from autogeorge.pipeline.images.search import ImageSearchService
from autogeorge.services.config_loader import load_prompt_config
from autogeorge.utils.date_utils import now_utc
from autogeorge.utils.exceptions import ImageError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


def featured_filename(article_id: str) -> str:
    """Media library filename of an article's featured image."""
    return f"featured-{article_id}.png"


class ImageStage:
    """Attaches a featured image to articles waiting in generated_image_draft.

    Success moves the article on (ready_to_publish when auto-publish is on,
    else generated_with_image); any failure marks it failed.
    """

    def __init__(
        self,
        config: Config,
        db: DatabaseConnection,
        image_client: Optional[ImageClient],
        search_service: Optional[ImageSearchService] = None,
        prompt_config: Optional[PromptConfig] = None,
    ):
        """Initialize image stage.

        Args:
            config: Application configuration (image mode, batch size, delay).
            db: Database connection.
            image_client: Image generation client, None when not configured.
            search_service: Image search, required in search mode.
            prompt_config: Image prompt template; loaded from YAML when omitted.
        """
        self.config = config
        self.image_client = image_client
        self.search_service = search_service
        self.prompt_config = prompt_config or load_prompt_config("image_prompt")
        self.articles = ArticleRepository(db)
        self.prompts = ImagePromptRepository(db)

    async def run(
        self,
        settings: Optional[AutomationSettings],
        generation_settings: Optional[GenerationSettings] = None,
    ) -> ImageStageResult:
        """Process one batch of articles."""
        started = time.perf_counter()
        logger.info("stage_auto_image_starting", mode=self.config.image_mode.value)

        if settings is None or not settings.enable_featured_image:
            logger.info("stage_auto_image_disabled")
            return ImageStageResult(message="Featured images disabled or no active site")

        generation_settings = generation_settings or GenerationSettings()
        stale_before = now_utc() - timedelta(seconds=self.config.claim_ttl_sec)
        articles = self.articles.get_by_status(
            [ArticleStatus.GENERATED_IMAGE_DRAFT], self.config.image_batch_size, stale_before
        )
        result = ImageStageResult()
        target = post_image_status(settings)

        for index, article in enumerate(articles):
            if index > 0 and self.config.image_delay_sec > 0:
                await asyncio.sleep(self.config.image_delay_sec)

            token = uuid4().hex
            if not self.articles.lease(
                article.id, ArticleStatus.GENERATED_IMAGE_DRAFT, token, stale_before
            ):
                logger.info("article_already_leased", article_id=article.id)
                continue

            try:
                url = await self.resolve_image(article, generation_settings)
                if not self.articles.transition(
                    article.id,
                    ArticleStatus.GENERATED_IMAGE_DRAFT,
                    target,
                    featured_media_url=url,
                ):
                    raise ImageError("Article status changed while the image was generated")
            except Exception as e:
                logger.warning("featured_image_failed", article_id=article.id, error=str(e))
                self.articles.transition(
                    article.id,
                    ArticleStatus.GENERATED_IMAGE_DRAFT,
                    ArticleStatus.FAILED,
                    last_error=str(e),
                )
                result.record_failure(article.title, e)
                continue

            result.record_success()
            result.article_ids.append(article.id)

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "stage_auto_image_complete",
            processed=result.processed,
            successful=result.successful,
            failed=result.failed,
        )
        return result

    async def resolve_image(self, article: Article, generation_settings: GenerationSettings) -> str:
        """Return the featured image URL for an article.

        Raises:
            ImageError: If no image can be produced.
        """
        if self.config.image_mode == ImageMode.SEARCH:
            if self.search_service is None:
                raise ImageError("Image search mode requires a search service")
            found = await self.search_service.search(
                article.id,
                article.title,
                article.content,
                allow_ai_generation=True,
                generation_settings=generation_settings,
            )
            return found.url

        if self.image_client is None:
            raise ImageError("No image generation client configured")

        prompt = self._prompt_for(article, generation_settings)
        image = await self.image_client.generate_image(
            prompt=prompt,
            size=generation_settings.image_size,
            style=generation_settings.image_style,
            module="image",
        )
        if not image.get("url"):
            raise ImageError("Image generation returned no URL")
        logger.info(
            "featured_image_generated",
            article_id=article.id,
            filename=featured_filename(article.id),
        )
        return image["url"]

    def _prompt_for(self, article: Article, generation_settings: GenerationSettings) -> str:
        cached = self.prompts.get(article.id)
        if cached is not None:
            logger.debug("image_prompt_cache_hit", article_id=article.id)
            return cached.prompt

        prompt = build_image_prompt(
            self.prompt_config,
            article.title,
            article.content,
            generation_settings.custom_image_prompt,
        )
        self.prompts.save(
            ImagePrompt(
                article_id=article.id,
                prompt=prompt,
                model=getattr(self.image_client, "image_model", None),
            )
        )
        return prompt
