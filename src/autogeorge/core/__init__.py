"""Core domain models and configuration."""

from autogeorge.core.article import Article, GeneratedArticle
from autogeorge.core.config import Config, PromptConfig, SourceConfig
from autogeorge.core.enums import (
    AlertSeverity,
    AlertStatus,
    ArticleStatus,
    FetchStatus,
    HealthStatus,
    ImageMode,
    PipelineStage,
    RunStatus,
    SearchLevel,
    SourceStatus,
    SourceType,
)
from autogeorge.core.feed import FeedEntry, FeedItem, Source
from autogeorge.core.health import (
    HealthAnalysis,
    HealthCheckRecord,
    HealthReport,
    HealthSnapshot,
    ServiceCheck,
    SystemAlert,
)
from autogeorge.core.image import (
    ImageCandidate,
    ImagePrompt,
    ImageSearchResult,
    SearchAttempt,
)
from autogeorge.core.results import (
    GenerationResult,
    ImageStageResult,
    PollResult,
    PublishResult,
    StageResult,
)
from autogeorge.core.site import AutomationSettings, GenerationSettings, WordPressSite

__all__ = [
    # Articles
    "Article",
    "GeneratedArticle",
    # Feeds
    "Source",
    "FeedEntry",
    "FeedItem",
    # Sites
    "WordPressSite",
    "AutomationSettings",
    "GenerationSettings",
    # Images
    "ImageCandidate",
    "ImagePrompt",
    "ImageSearchResult",
    "SearchAttempt",
    # Health
    "ServiceCheck",
    "HealthSnapshot",
    "HealthCheckRecord",
    "SystemAlert",
    "HealthAnalysis",
    "HealthReport",
    # Results
    "StageResult",
    "PollResult",
    "GenerationResult",
    "ImageStageResult",
    "PublishResult",
    # Configuration
    "Config",
    "PromptConfig",
    "SourceConfig",
    # Enums
    "ArticleStatus",
    "SourceStatus",
    "SourceType",
    "FetchStatus",
    "HealthStatus",
    "AlertSeverity",
    "AlertStatus",
    "SearchLevel",
    "ImageMode",
    "PipelineStage",
    "RunStatus",
]
