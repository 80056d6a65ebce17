"""Featured image resolution: generation, search and scoring."""

from autogeorge.pipeline.images.keywords import extract_keywords, infer_themes, is_sensitive_topic
from autogeorge.pipeline.images.prompt import build_image_prompt
from autogeorge.pipeline.images.scoring import parse_candidates, rank, score_candidate
from autogeorge.pipeline.images.search import ImageSearchService, curated_image
from autogeorge.pipeline.images.stage import ImageStage, featured_filename

__all__ = [
    "ImageSearchService",
    "ImageStage",
    "build_image_prompt",
    "curated_image",
    "extract_keywords",
    "featured_filename",
    "infer_themes",
    "is_sensitive_topic",
    "parse_candidates",
    "rank",
    "score_candidate",
]
