"""WordPress publishing stage."""

import asyncio
import time
from datetime import timedelta
from typing import Callable, List, Optional
from uuid import uuid4

from autogeorge.core.article import Article
from autogeorge.core.config import Config
from autogeorge.core.enums import ArticleStatus
from autogeorge.core.results import PublishResult
from autogeorge.core.site import AutomationSettings, WordPressSite
from autogeorge.core.workflow import PUBLISHABLE
from autogeorge.database.article_repository import ArticleRepository
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.site_repository import SiteRepository
from autogeorge.integrations.wordpress_client import WordPressClient
from autogeorge.pipeline.images.stage import featured_filename
from autogeorge.utils.date_utils import now_utc
from autogeorge.utils.exceptions import PublishError, WordPressError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

EXCERPT_LENGTH = 150

WordPressClientFactory = Callable[[WordPressSite], WordPressClient]


def _as_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class Publisher:
    """Publishes automatically generated articles to the active site.

    A failed publication leaves the article's status alone so the next run
    retries it; the error and retry count are recorded on the article.
    """

    def __init__(
        self,
        config: Config,
        db: DatabaseConnection,
        client_factory: Optional[WordPressClientFactory] = None,
    ):
        """Initialize publisher.

        Args:
            config: Application configuration (batch size, delay, timeout).
            db: Database connection.
            client_factory: Builds the WordPress client for a site.
        """
        self.config = config
        self.articles = ArticleRepository(db)
        self.sites = SiteRepository(db)
        self.client_factory = client_factory or (
            lambda site: WordPressClient(site, timeout=config.wordpress_timeout_sec)
        )

    async def run(self, settings: Optional[AutomationSettings]) -> PublishResult:
        """Publish one batch of articles."""
        started = time.perf_counter()
        logger.info("stage_auto_publish_starting")

        if settings is None or not settings.enable_auto_publish or not settings.site_id:
            logger.info("stage_auto_publish_disabled")
            return PublishResult(message="Auto publish disabled or no active site")

        site = self.sites.get(settings.site_id)
        if site is None or not site.is_active:
            return PublishResult(message="Auto publish disabled or no active site")

        stale_before = now_utc() - timedelta(seconds=self.config.claim_ttl_sec)
        articles = self.articles.get_by_status(
            PUBLISHABLE,
            self.config.publish_batch_size,
            stale_before,
            auto_generated_only=True,
        )
        result = PublishResult()

        async with self.client_factory(site) as wp:
            for index, article in enumerate(articles):
                if index > 0 and self.config.publish_delay_sec > 0:
                    await asyncio.sleep(self.config.publish_delay_sec)

                token = uuid4().hex
                if not self.articles.lease(article.id, article.status, token, stale_before):
                    logger.info("article_already_leased", article_id=article.id)
                    continue

                try:
                    post_id = await self.publish_article(wp, site, article)
                    if not self.articles.transition(
                        article.id,
                        article.status,
                        ArticleStatus.PUBLISHED,
                        wordpress_post_id=post_id,
                        published_at=now_utc(),
                    ):
                        raise PublishError(
                            f"Article status changed after WordPress post {post_id} was created"
                        )
                except Exception as e:
                    logger.warning("publish_failed", article_id=article.id, error=str(e))
                    self.articles.release(article.id, token, error=str(e))
                    self.sites.record_error(site.id, str(e))
                    result.record_failure(article.title, e)
                    continue

                self.sites.record_publish(site.id)
                result.record_success()

        result.duration_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "stage_auto_publish_complete",
            processed=result.processed,
            published=result.published,
            failed=result.failed,
        )
        return result

    async def publish_article(
        self, wp: WordPressClient, site: WordPressSite, article: Article
    ) -> int:
        """Create the WordPress post for an article.

        The featured image is uploaded first; if the upload fails the post
        goes out without one.

        Returns:
            WordPress post ID.

        Raises:
            WordPressError: If the post cannot be created.
        """
        featured_media = None
        if article.featured_media_url:
            try:
                media = await wp.upload_media_from_url(
                    article.featured_media_url, featured_filename(article.id)
                )
                featured_media = media.get("id")
            except WordPressError as e:
                logger.warning("featured_media_upload_failed", article_id=article.id, error=str(e))

        category = _as_int(site.default_category)
        categories: List[int] = [category] if category is not None else []

        post = await wp.create_post(
            title=article.title,
            content=article.content,
            status=site.default_status or "publish",
            categories=categories,
            excerpt=article.title[:EXCERPT_LENGTH],
            featured_media=featured_media,
            author=_as_int(site.default_author),
        )
        if not post.get("id"):
            raise WordPressError("WordPress did not return a post ID")
        logger.info("article_published", article_id=article.id, post_id=post["id"])
        return int(post["id"])
