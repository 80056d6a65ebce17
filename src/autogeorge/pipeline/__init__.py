"""Content pipeline stages."""

from autogeorge.pipeline.generator import ArticleGenerator
from autogeorge.pipeline.images import ImageSearchService, ImageStage
from autogeorge.pipeline.orchestrator import StageRunner
from autogeorge.pipeline.poller import FeedPoller
from autogeorge.pipeline.publisher import Publisher

__all__ = [
    "ArticleGenerator",
    "FeedPoller",
    "ImageSearchService",
    "ImageStage",
    "Publisher",
    "StageRunner",
]
