"""Enums for AutoGeorge."""

from enum import Enum


class ArticleStatus(str, Enum):
    """Workflow state of an article.

    Order of declaration follows the pipeline; see core.workflow for the
    allowed transitions.
    """

    DRAFT = "draft"
    GENERATED = "generated"
    GENERATED_IMAGE_DRAFT = "generated_image_draft"
    GENERATED_WITH_IMAGE = "generated_with_image"
    READY_TO_PUBLISH = "ready_to_publish"
    PUBLISHED = "published"
    FAILED = "failed"


class SourceStatus(str, Enum):
    """Source polling status."""

    ACTIVE = "active"
    PAUSED = "paused"
    ERROR = "error"


class SourceType(str, Enum):
    """Content source types."""

    RSS = "rss"
    TELEGRAM = "telegram"
    CALENDAR = "calendar"


class FetchStatus(str, Enum):
    """Outcome of the last fetch of a source."""

    SUCCESS = "success"
    ERROR = "error"


class HealthStatus(str, Enum):
    """Health of a service or of the whole system."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class AlertSeverity(str, Enum):
    """System alert severity."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    """System alert lifecycle."""

    ACTIVE = "active"
    RESOLVED = "resolved"


class SearchLevel(str, Enum):
    """Image search level that produced the chosen image."""

    LEVEL1_SPECIFIC = "level1_specific"
    LEVEL2_THEMATIC = "level2_thematic"
    FALLBACK = "fallback"
    AI_GENERATED = "ai_generated"
    CURATED = "curated"


class ImageMode(str, Enum):
    """How the image stage obtains a featured image."""

    AI = "ai"
    SEARCH = "search"


class PipelineStage(str, Enum):
    """Cron-triggered pipeline stages (value is the route name)."""

    POLL_FEEDS = "poll-feeds"
    GENERATE_ARTICLES = "generate-articles"
    AUTO_GENERATION = "auto-generation"
    AUTO_IMAGE = "auto-image"
    AUTO_PUBLISH = "auto-publish"
    HEALTH_MONITOR = "health-monitor"
    HEALTH_REPORT = "health-report"


class RunStatus(str, Enum):
    """Status of a recorded stage run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
