# tests/integration/test_publisher.py
"""Integration tests for the WordPress publishing stage."""

from typing import Optional

import pytest

from autogeorge.core.enums import ArticleStatus
from autogeorge.core.site import AutomationSettings
from autogeorge.database.article_repository import ArticleRepository
from autogeorge.database.site_repository import SiteRepository
from autogeorge.pipeline.publisher import Publisher


def _publisher(test_config, test_db, wp) -> Publisher:
    return Publisher(test_config, test_db, client_factory=lambda site: wp)


def _settings(site_id: Optional[str], enabled: bool = True) -> AutomationSettings:
    return AutomationSettings(site_id=site_id, enable_auto_publish=enabled)


@pytest.mark.integration
class TestPublisher:
    """Tests for Publisher."""

    @pytest.mark.asyncio
    async def test_publishes_ready_articles(
        self, test_config, test_db, make_site, make_article, wordpress
    ):
        """Should post publishable articles and mark them published."""
        site = make_site(default_author="3")
        article = make_article(
            status=ArticleStatus.READY_TO_PUBLISH,
            featured_media_url="https://images.example.com/generated/featured.png",
        )

        result = await _publisher(test_config, test_db, wordpress).run(_settings(site.id))

        assert result.published == 1
        assert result.successful == 1
        assert wordpress.closed
        assert wordpress.uploads == [
            ("https://images.example.com/generated/featured.png", f"featured-{article.id}.png")
        ]
        post = wordpress.posts[0]
        assert post["title"] == article.title
        assert post["status"] == "publish"
        assert post["categories"] == [7]
        assert post["featured_media"] == 901
        assert post["author"] == 3
        assert post["excerpt"] == article.title[:150]

        stored = ArticleRepository(test_db).get(article.id)
        assert stored.status == ArticleStatus.PUBLISHED
        assert stored.wordpress_post_id == 101
        assert stored.published_at is not None
        assert SiteRepository(test_db).get(site.id).last_publish_at is not None

    @pytest.mark.asyncio
    async def test_generated_articles_publishable(
        self, test_config, test_db, make_site, make_article, wordpress
    ):
        """Should also publish articles still in generated status."""
        site = make_site()
        article = make_article(status=ArticleStatus.GENERATED)

        await _publisher(test_config, test_db, wordpress).run(_settings(site.id))

        assert ArticleRepository(test_db).get(article.id).status == ArticleStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_skips_manual_and_unready_articles(
        self, test_config, test_db, make_site, make_article, wordpress
    ):
        """Should ignore manual articles and ones still waiting for an image."""
        site = make_site()
        manual = make_article(status=ArticleStatus.READY_TO_PUBLISH, generation_config=None)
        waiting = make_article(status=ArticleStatus.GENERATED_IMAGE_DRAFT)

        result = await _publisher(test_config, test_db, wordpress).run(_settings(site.id))

        assert result.processed == 0
        assert wordpress.posts == []
        articles = ArticleRepository(test_db)
        assert articles.get(manual.id).status == ArticleStatus.READY_TO_PUBLISH
        assert articles.get(waiting.id).status == ArticleStatus.GENERATED_IMAGE_DRAFT

    @pytest.mark.asyncio
    async def test_failure_is_retried_later(
        self, test_config, test_db, make_site, make_article, wordpress
    ):
        """Should keep the status, count the retry and note the site error."""
        site = make_site()
        failing = make_article(status=ArticleStatus.READY_TO_PUBLISH, title="Rifiutato")
        ok = make_article(status=ArticleStatus.READY_TO_PUBLISH, title="Accettato")
        wordpress.fail_titles.add("Rifiutato")

        result = await _publisher(test_config, test_db, wordpress).run(_settings(site.id))

        assert result.failed == 1
        assert result.published == 1
        assert result.errors[0].startswith("Rifiutato: WordPress error 403")
        assert "403" in SiteRepository(test_db).get(site.id).last_error

        articles = ArticleRepository(test_db)
        stored = articles.get(failing.id)
        assert stored.status == ArticleStatus.READY_TO_PUBLISH
        assert stored.retry_count == 1
        assert "403" in stored.last_error
        assert articles.get(ok.id).status == ArticleStatus.PUBLISHED

        # The released article is picked up again by the next run
        wordpress.fail_titles.clear()
        result = await _publisher(test_config, test_db, wordpress).run(_settings(site.id))
        assert result.published == 1
        assert articles.get(failing.id).status == ArticleStatus.PUBLISHED

    @pytest.mark.asyncio
    async def test_upload_failure_posts_without_image(
        self, test_config, test_db, make_site, make_article, wordpress
    ):
        """Should publish without featured media when the upload fails."""
        site = make_site()
        make_article(
            status=ArticleStatus.READY_TO_PUBLISH,
            featured_media_url="https://images.example.com/huge.png",
        )
        wordpress.fail_upload = True

        result = await _publisher(test_config, test_db, wordpress).run(_settings(site.id))

        assert result.published == 1
        assert wordpress.posts[0]["featured_media"] is None

    @pytest.mark.asyncio
    async def test_disabled_or_missing_site(
        self, test_config, test_db, make_site, make_article, wordpress
    ):
        """Should do nothing without auto-publish or an active site."""
        site = make_site()
        make_article(status=ArticleStatus.READY_TO_PUBLISH)
        publisher = _publisher(test_config, test_db, wordpress)

        assert (await publisher.run(_settings(site.id, enabled=False))).processed == 0
        assert (await publisher.run(None)).processed == 0
        assert (await publisher.run(_settings("missing-site"))).processed == 0

        SiteRepository(test_db).update(site.id, is_active=False)
        assert (await publisher.run(_settings(site.id))).processed == 0
        assert wordpress.posts == []
