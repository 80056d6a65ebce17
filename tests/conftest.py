# tests/conftest.py
"""Shared test fixtures and configuration."""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Set, Tuple
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from autogeorge.core.article import Article
from autogeorge.core.config import Config
from autogeorge.core.enums import ArticleStatus
from autogeorge.core.feed import FeedEntry, FeedItem, Source
from autogeorge.core.site import WordPressSite
from autogeorge.database.article_repository import ArticleRepository
from autogeorge.database.connection import DatabaseConnection, init_database
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.database.site_repository import SiteRepository
from autogeorge.database.source_repository import SourceRepository
from autogeorge.utils.exceptions import WordPressError


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Test configuration with temporary paths and no pauses between items."""
    return Config(
        _env_file=None,
        db_path=tmp_path / "test.db",
        cron_secret=None,
        perplexity_api_key="test-key-12345",
        openai_api_key=None,
        poll_batch_delay_sec=0,
        image_delay_sec=0,
        publish_delay_sec=0,
        email_notifications_enabled=False,
    )


@pytest.fixture
def test_db(test_config: Config) -> Generator[DatabaseConnection, None, None]:
    """Temp-file SQLite database with schema initialized."""
    db = init_database(test_config.db_path)

    yield db

    db.close()


@pytest.fixture
def source(test_db: DatabaseConnection) -> Source:
    """An active RSS source."""
    return SourceRepository(test_db).create(
        name="Corriere Tech",
        url="https://example.com/feed.xml",
    )


@pytest.fixture
def make_site(test_db: DatabaseConnection) -> Callable[..., WordPressSite]:
    """Factory for WordPress sites; keyword arguments override the defaults."""

    def _make(**overrides) -> WordPressSite:
        fields = {
            "name": "Blog di prova",
            "url": "https://blog.example.com",
            "username": "editor",
            "password": "app-password",
            "default_category": "7",
            "default_status": "publish",
            "enable_auto_generation": True,
            "enable_featured_image": True,
            "enable_auto_publish": False,
        }
        fields.update(overrides)
        return SiteRepository(test_db).create(**fields)

    return _make


@pytest.fixture
def make_feed_item(test_db: DatabaseConnection, source: Source) -> Callable[..., FeedItem]:
    """Factory for stored feed items of the `source` fixture."""

    def _make(title: str = "Nuovo processore AI presentato a Milano", **overrides) -> FeedItem:
        entry = FeedEntry(
            title=title,
            link=overrides.get("link", f"https://example.com/{uuid4().hex[:8]}"),
            guid=overrides.get("guid", uuid4().hex),
            content=overrides.get(
                "content",
                "Una startup milanese ha presentato un processore per l'intelligenza artificiale.",
            ),
            published_at=datetime(2026, 1, 4, 10, 0, tzinfo=timezone.utc),
        )
        item = FeedItemRepository(test_db).insert_if_new(source.id, entry)
        assert item is not None
        return item

    return _make


@pytest.fixture
def make_article(test_db: DatabaseConnection) -> Callable[..., Article]:
    """Factory for stored articles."""

    def _make(status: ArticleStatus = ArticleStatus.GENERATED, **overrides) -> Article:
        fields = {
            "id": uuid4().hex,
            "title": "Intelligenza artificiale e lavoro in Italia",
            "content": "Le aziende italiane investono in software e algoritmi di intelligenza artificiale.",
            "status": status,
            "generation_config": {"provider": "perplexity", "model": "sonar"},
        }
        fields.update(overrides)
        return ArticleRepository(test_db).create(Article(**fields))

    return _make


@pytest.fixture
def generated_article_payload() -> dict:
    """JSON object returned by the LLM for one article."""
    return {
        "title": "Milano, presentato un nuovo processore per l'AI",
        "content": "## Il lancio\n\nUna startup milanese ha presentato oggi un processore...",
        "metaDescription": "Una startup milanese lancia un processore dedicato all'AI.",
        "seoTags": ["intelligenza artificiale", "startup", "Milano"],
    }


@pytest.fixture
def mock_llm_client(generated_article_payload: dict) -> Mock:
    """Mock chat client returning a valid article."""
    mock = Mock()
    mock.provider = "perplexity"
    mock.default_model = "sonar"
    mock.create_completion = AsyncMock(
        return_value={
            "content": generated_article_payload,
            "usage": {"input_tokens": 420, "output_tokens": 900, "total_tokens": 1320},
        }
    )
    return mock


@pytest.fixture
def mock_image_client() -> Mock:
    """Mock image generation client."""
    mock = Mock()
    mock.provider = "openai"
    mock.default_model = "gpt-4o-mini"
    mock.image_model = "dall-e-3"
    mock.generate_image = AsyncMock(
        return_value={
            "url": "https://images.example.com/generated/featured.png",
            "revised_prompt": None,
        }
    )
    return mock


@pytest.fixture
def sample_rss_feed() -> str:
    """Sample RSS feed XML."""
    return """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Test RSS Feed</title>
    <link>https://example.com</link>
    <description>Test feed</description>
    <item>
      <title>Nuovo processore AI presentato a Milano</title>
      <link>https://example.com/article-1</link>
      <guid>https://example.com/article-1</guid>
      <description>&lt;p&gt;Una startup &lt;b&gt;milanese&lt;/b&gt; lancia un chip.&lt;/p&gt;</description>
      <pubDate>Sat, 04 Jan 2026 10:00:00 +0000</pubDate>
    </item>
    <item>
      <title>Borsa di Milano in rialzo</title>
      <link>https://example.com/article-2</link>
      <description>I mercati chiudono in positivo.</description>
      <pubDate>Sat, 04 Jan 2026 11:00:00 +0000</pubDate>
    </item>
  </channel>
</rss>"""


class FakeWordPress:
    """Stands in for WordPressClient; records posts and uploads."""

    def __init__(self):
        self.fail_titles: Set[str] = set()
        self.fail_upload = False
        self.posts: List[Dict[str, Any]] = []
        self.uploads: List[Tuple[str, str]] = []
        self.closed = False

    async def __aenter__(self) -> "FakeWordPress":
        self.closed = False
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    async def upload_media_from_url(self, image_url: str, filename: str) -> Dict[str, Any]:
        if self.fail_upload:
            raise WordPressError("upload rejected", status_code=413)
        self.uploads.append((image_url, filename))
        return {"id": 900 + len(self.uploads), "source_url": image_url}

    async def create_post(self, **payload: Any) -> Dict[str, Any]:
        if payload["title"] in self.fail_titles:
            raise WordPressError("WordPress error 403: forbidden", status_code=403)
        self.posts.append(payload)
        post_id = 100 + len(self.posts)
        return {"id": post_id, "link": f"https://blog.example.com/?p={post_id}", "status": "publish"}

    async def list_categories(self) -> List[Dict[str, Any]]:
        return [{"id": 7, "name": "Tecnologia", "slug": "tecnologia"}]

    async def list_posts(self, page: int = 1, per_page: int = 10) -> List[Dict[str, Any]]:
        return [{"id": 100 + i, "title": f"Post {i}"} for i in range(per_page)]


@pytest.fixture
def wordpress() -> FakeWordPress:
    """In-memory WordPress client."""
    return FakeWordPress()


# Pytest configuration
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "asyncio: Async tests")
