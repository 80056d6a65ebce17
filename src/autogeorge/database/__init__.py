"""Database layer."""

from autogeorge.database.article_repository import ArticleRepository, ImagePromptRepository
from autogeorge.database.connection import DatabaseConnection, init_database
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.database.health_repository import HealthRepository
from autogeorge.database.pipeline_repository import LeaseRepository, RunRepository
from autogeorge.database.site_repository import SiteRepository
from autogeorge.database.source_repository import SourceRepository

__all__ = [
    "DatabaseConnection",
    "init_database",
    "ArticleRepository",
    "ImagePromptRepository",
    "FeedItemRepository",
    "HealthRepository",
    "LeaseRepository",
    "RunRepository",
    "SiteRepository",
    "SourceRepository",
]
