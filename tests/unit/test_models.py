# tests/unit/test_models.py
"""Unit tests for domain models."""

import pytest
from pydantic import ValidationError

from autogeorge.core.article import Article, GeneratedArticle
from autogeorge.core.config import Config
from autogeorge.core.enums import ArticleStatus, SearchLevel, SourceStatus, SourceType
from autogeorge.core.feed import Source
from autogeorge.core.image import ImageSearchResult
from autogeorge.core.results import PublishResult, StageResult
from autogeorge.core.site import AutomationSettings, GenerationSettings, WordPressSite


@pytest.mark.unit
class TestGeneratedArticle:
    """Tests for GeneratedArticle."""

    def test_camel_case_keys(self, generated_article_payload):
        """Should accept the keys requested in the prompt."""
        article = GeneratedArticle.model_validate(generated_article_payload)
        assert article.meta_description.startswith("Una startup")
        assert article.seo_tags == ["intelligenza artificiale", "startup", "Milano"]

    def test_comma_separated_tags(self):
        """Should split a comma separated tag string."""
        article = GeneratedArticle(title="T", content="C", seoTags="uno, due,, tre")
        assert article.seo_tags == ["uno", "due", "tre"]

    def test_blank_title_rejected(self):
        """Should reject a whitespace-only title."""
        with pytest.raises(ValidationError):
            GeneratedArticle(title="   ", content="Testo")

    def test_missing_content_rejected(self):
        """Should reject a reply without content."""
        with pytest.raises(ValidationError):
            GeneratedArticle.model_validate({"title": "Titolo"})


@pytest.mark.unit
class TestArticle:
    """Tests for Article."""

    def test_defaults(self):
        """Should start generated, not auto-generated, with no retries."""
        article = Article(id="a1", title="T", content="C")
        assert article.status == ArticleStatus.GENERATED
        assert article.is_auto_generated is False
        assert article.retry_count == 0

    def test_auto_generated(self):
        """Should be auto-generated when it carries a generation config."""
        article = Article(id="a1", title="T", content="C", generation_config={"model": "sonar"})
        assert article.is_auto_generated is True


@pytest.mark.unit
class TestSource:
    """Tests for Source."""

    def test_pollable(self):
        """Should poll only active RSS sources with a URL."""
        assert Source(id="s", name="Feed", url="https://example.com/rss").is_pollable is True
        assert Source(id="s", name="Feed").is_pollable is False
        assert (
            Source(id="s", name="Feed", url="https://x", status=SourceStatus.PAUSED).is_pollable
            is False
        )
        assert (
            Source(id="s", name="Feed", url="https://x", type=SourceType.CALENDAR).is_pollable
            is False
        )


@pytest.mark.unit
class TestWordPressSite:
    """Tests for WordPressSite."""

    def test_api_base(self):
        """Should build the wp/v2 base URL without a double slash."""
        site = WordPressSite(id="w", name="Blog", url="https://blog.example.com/", username="u", password="p")
        assert site.api_base == "https://blog.example.com/wp-json/wp/v2"

    def test_public_dict_hides_password(self):
        """Should never expose the password."""
        site = WordPressSite(id="w", name="Blog", url="https://b", username="u", password="secret")
        assert "password" not in site.public_dict()
        assert "secret" not in repr(site)

    def test_automation_settings(self):
        """Should snapshot the automation flags."""
        site = WordPressSite(
            id="w",
            name="Blog",
            url="https://b",
            username="u",
            password="p",
            enable_auto_generation=True,
            enable_auto_publish=True,
        )
        settings = site.automation_settings()
        assert settings == AutomationSettings(
            site_id="w",
            enable_auto_generation=True,
            enable_featured_image=True,
            enable_auto_publish=True,
        )

    def test_settings_are_frozen(self):
        """Should not allow stages to change the flags."""
        settings = AutomationSettings()
        with pytest.raises(ValidationError):
            settings.enable_auto_publish = True


@pytest.mark.unit
class TestGenerationSettings:
    """Tests for GenerationSettings defaults."""

    def test_defaults(self):
        """Should match the documented defaults."""
        settings = GenerationSettings()
        assert settings.model == "sonar"
        assert settings.temperature == 0.7
        assert settings.max_tokens == 2000
        assert settings.language == "it"
        assert settings.tone == "professionale"
        assert settings.style == "giornalistico"
        assert settings.target_audience == "generale"
        assert settings.image_style == "natural"
        assert settings.image_size == "1792x1024"
        assert settings.custom_image_prompt is None

    def test_temperature_bounds(self):
        """Should reject temperatures outside 0-2."""
        with pytest.raises(ValidationError):
            GenerationSettings(temperature=3)


@pytest.mark.unit
class TestResults:
    """Tests for stage result models."""

    def test_record_failure(self):
        """Should count the failure and keep a labelled error."""
        result = StageResult()
        result.record_failure("Titolo", RuntimeError("boom"))
        assert result.processed == 1
        assert result.failed == 1
        assert result.errors == ["Titolo: boom"]

    def test_publish_result_mirrors_successes(self):
        """Should count published articles as successes."""
        result = PublishResult()
        result.record_success()
        assert result.published == 1
        assert result.successful == 1

    def test_image_result_requires_url(self):
        """Should never hold an empty image URL."""
        with pytest.raises(ValidationError):
            ImageSearchResult(url="", level=SearchLevel.CURATED)


@pytest.mark.unit
class TestConfig:
    """Tests for Config."""

    def test_defaults(self):
        """Should load defaults without an env file."""
        config = Config(_env_file=None)
        assert config.perplexity_base_url == "https://api.perplexity.ai"
        assert config.poll_batch_size == 3
        assert config.generate_batch_size == 50
        assert config.auto_generation_batch_size == 3
        assert config.image_batch_size == 5
        assert config.publish_batch_size == 10
        assert config.stage_lease_ttl_sec == 600

    def test_email_recipient_list(self):
        """Should split and trim comma separated recipients."""
        config = Config(_env_file=None, email_recipients=" a@example.com, b@example.com ,")
        assert config.email_recipient_list == ["a@example.com", "b@example.com"]

    def test_email_enabled_needs_recipients(self):
        """Should not mail reports without recipients."""
        assert Config(_env_file=None, email_notifications_enabled=True).email_enabled is False
        assert (
            Config(
                _env_file=None,
                email_notifications_enabled=True,
                email_recipients="ops@example.com",
            ).email_enabled
            is True
        )
