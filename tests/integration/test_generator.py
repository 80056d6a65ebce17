# tests/integration/test_generator.py
"""Integration tests for the article generation stage."""

import pytest

from autogeorge.core.article import GeneratedArticle
from autogeorge.core.enums import ArticleStatus, SourceStatus
from autogeorge.core.feed import FeedEntry
from autogeorge.core.site import AutomationSettings, GenerationSettings
from autogeorge.database.article_repository import ArticleRepository
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.database.source_repository import SourceRepository
from autogeorge.pipeline.generator import ArticleGenerator
from autogeorge.utils.date_utils import now_utc
from autogeorge.utils.exceptions import AIServiceError


def _settings(**flags) -> AutomationSettings:
    return AutomationSettings(site_id="site-1", **flags)


@pytest.mark.integration
class TestRunBatch:
    """Tests for manual batch generation."""

    @pytest.mark.asyncio
    async def test_generates_article_per_item(
        self, test_config, test_db, make_feed_item, mock_llm_client
    ):
        """Should create one article per pending item and consume the items."""
        first = make_feed_item(title="Primo titolo")
        second = make_feed_item(title="Secondo titolo")
        generator = ArticleGenerator(test_config, test_db, mock_llm_client)

        result = await generator.run_batch(_settings())

        assert result.total_items == 2
        assert result.successful == 2
        assert len(result.article_ids) == 2

        articles = ArticleRepository(test_db)
        article = articles.get(result.article_ids[0])
        assert article.title == "Milano, presentato un nuovo processore per l'AI"
        assert article.meta_description.startswith("Una startup milanese")
        assert article.seo_tags == ["intelligenza artificiale", "startup", "Milano"]
        assert article.status == ArticleStatus.GENERATED
        assert article.site_id == "site-1"
        # Manual generation never feeds the automatic publisher
        assert article.generation_config is None

        items = FeedItemRepository(test_db)
        assert items.get(first.id).processed
        assert items.get(second.id).processed
        assert items.get_pending(10, now_utc()) == []

    @pytest.mark.asyncio
    async def test_prompt_and_request(
        self, test_config, test_db, make_feed_item, mock_llm_client
    ):
        """Should send the item in the prompt with the site's settings."""
        make_feed_item(title="Chip italiano a Milano")
        generator = ArticleGenerator(test_config, test_db, mock_llm_client)

        await generator.run_batch(
            _settings(),
            GenerationSettings(model="sonar-pro", temperature=0.4, max_tokens=1500, tone="ironico"),
        )

        kwargs = mock_llm_client.create_completion.call_args.kwargs
        assert kwargs["module"] == "generator"
        assert kwargs["model"] == "sonar-pro"
        assert kwargs["temperature"] == 0.4
        assert kwargs["max_tokens"] == 1500
        assert kwargs["response_format"] is GeneratedArticle
        user_prompt = kwargs["messages"][1]["content"]
        assert "Chip italiano a Milano" in user_prompt
        assert "ironico" in user_prompt

    @pytest.mark.asyncio
    async def test_other_provider_uses_its_default_model(
        self, test_config, test_db, make_feed_item, mock_llm_client
    ):
        """Should not send a Perplexity model name to another provider."""
        mock_llm_client.provider = "openai"
        make_feed_item()

        await ArticleGenerator(test_config, test_db, mock_llm_client).run_batch(_settings())

        assert mock_llm_client.create_completion.call_args.kwargs["model"] is None

    @pytest.mark.asyncio
    async def test_inactive_source_skipped(
        self, test_config, test_db, source, make_feed_item, mock_llm_client
    ):
        """Should leave items of paused sources pending."""
        item = make_feed_item()
        SourceRepository(test_db).set_status(source.id, SourceStatus.PAUSED)

        result = await ArticleGenerator(test_config, test_db, mock_llm_client).run_batch(
            _settings()
        )

        assert result.skipped == 1
        assert result.successful == 0
        mock_llm_client.create_completion.assert_not_called()
        assert not FeedItemRepository(test_db).get(item.id).processed

    @pytest.mark.asyncio
    async def test_paused_backlog_does_not_starve_active_items(
        self, test_config, test_db, source, make_feed_item, mock_llm_client
    ):
        """Should reach an active item queued behind a full batch of paused-source items."""
        test_config.generate_batch_size = 2
        sources = SourceRepository(test_db)
        paused = sources.create(name="Feed in pausa", url="https://paused.example.com/rss")
        items = FeedItemRepository(test_db)
        for n in range(3):
            items.insert_if_new(
                paused.id, FeedEntry(title=f"Notizia in pausa {n}", guid=f"paused-{n}")
            )
        sources.set_status(paused.id, SourceStatus.PAUSED)
        active_item = make_feed_item(title="Notizia attiva")

        generator = ArticleGenerator(test_config, test_db, mock_llm_client)
        result = await generator.run_batch(_settings())

        assert result.total_items == 1
        assert result.successful == 1
        assert result.skipped == 3
        assert items.get(active_item.id).processed

        # Nothing active is left; the paused backlog stays put
        again = await generator.run_batch(_settings())
        assert again.successful == 0
        assert again.skipped == 3
        assert mock_llm_client.create_completion.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_reply_releases_item(
        self, test_config, test_db, make_feed_item, mock_llm_client
    ):
        """Should record a failure and leave the item for the next run."""
        item = make_feed_item()
        mock_llm_client.create_completion.return_value = {
            "content": {"title": "Solo titolo"},
            "usage": {},
        }

        result = await ArticleGenerator(test_config, test_db, mock_llm_client).run_batch(
            _settings()
        )

        assert result.failed == 1
        assert result.errors[0].startswith(item.title)
        assert ArticleRepository(test_db).count() == 0
        stored = FeedItemRepository(test_db).get(item.id)
        assert not stored.processed
        assert stored.claim_token is None

    @pytest.mark.asyncio
    async def test_api_error_does_not_stop_batch(
        self, test_config, test_db, make_feed_item, mock_llm_client, generated_article_payload
    ):
        """Should continue with the next item after an API failure."""
        make_feed_item(title="Primo titolo")
        make_feed_item(title="Secondo titolo")
        mock_llm_client.create_completion.side_effect = [
            AIServiceError("rate limited"),
            {"content": generated_article_payload, "usage": {}},
        ]

        result = await ArticleGenerator(test_config, test_db, mock_llm_client).run_batch(
            _settings()
        )

        assert result.failed == 1
        assert result.successful == 1
        assert "rate limited" in result.errors[0]


@pytest.mark.integration
class TestRunAuto:
    """Tests for flag-gated automatic generation."""

    @pytest.mark.asyncio
    async def test_disabled_is_noop(self, test_config, test_db, make_feed_item, mock_llm_client):
        """Should do nothing when auto-generation is off."""
        make_feed_item()
        generator = ArticleGenerator(test_config, test_db, mock_llm_client)

        result = await generator.run_auto(_settings(enable_auto_generation=False))
        assert result.processed == 0
        assert result.message

        result = await generator.run_auto(None)
        assert result.processed == 0
        mock_llm_client.create_completion.assert_not_called()

    @pytest.mark.asyncio
    async def test_sets_generation_config(
        self, test_config, test_db, make_feed_item, mock_llm_client
    ):
        """Should stamp the provider and settings on automatic articles."""
        make_feed_item()

        result = await ArticleGenerator(test_config, test_db, mock_llm_client).run_auto(
            _settings(enable_auto_generation=True),
            GenerationSettings(model="sonar-pro"),
        )

        article = ArticleRepository(test_db).get(result.article_ids[0])
        assert article.generation_config["provider"] == "perplexity"
        assert article.generation_config["model"] == "sonar-pro"
        assert article.generation_config["settings"]["model"] == "sonar-pro"
        assert "generated_at" in article.generation_config

    @pytest.mark.parametrize(
        "flags, expected",
        [
            ({"enable_featured_image": True, "enable_auto_publish": True}, ArticleStatus.GENERATED_IMAGE_DRAFT),
            ({"enable_featured_image": True}, ArticleStatus.GENERATED_IMAGE_DRAFT),
            ({"enable_auto_publish": True}, ArticleStatus.READY_TO_PUBLISH),
            ({}, ArticleStatus.GENERATED),
        ],
    )
    @pytest.mark.asyncio
    async def test_initial_status_from_flags(
        self, test_config, test_db, make_feed_item, mock_llm_client, flags, expected
    ):
        """Should pick the initial status from the site's flags."""
        make_feed_item()

        result = await ArticleGenerator(test_config, test_db, mock_llm_client).run_auto(
            _settings(enable_auto_generation=True, **flags)
        )

        assert ArticleRepository(test_db).get(result.article_ids[0]).status == expected

    @pytest.mark.asyncio
    async def test_batch_size(self, test_config, test_db, make_feed_item, mock_llm_client):
        """Should take at most the configured number of items per run."""
        for i in range(5):
            make_feed_item(title=f"Notizia {i}")

        result = await ArticleGenerator(test_config, test_db, mock_llm_client).run_auto(
            _settings(enable_auto_generation=True)
        )

        assert result.total_items == test_config.auto_generation_batch_size
        assert len(FeedItemRepository(test_db).get_pending(10, now_utc())) == 2
