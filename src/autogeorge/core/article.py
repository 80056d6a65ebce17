"""Article domain models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from autogeorge.core.enums import ArticleStatus
from autogeorge.utils.date_utils import now_utc


class GeneratedArticle(BaseModel):
    """Article body returned by the LLM (JSON mode).

    Field aliases match the keys requested in the generation prompt.
    """

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    meta_description: Optional[str] = Field(default=None, alias="metaDescription")
    seo_tags: List[str] = Field(default_factory=list, alias="seoTags")

    model_config = {"populate_by_name": True}

    @field_validator("title", "content", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("seo_tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        """Accept a comma separated string as well as a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v


class Article(BaseModel):
    """A piece of content moving through the pipeline."""

    id: str
    title: str
    content: str
    status: ArticleStatus = ArticleStatus.GENERATED

    source_id: Optional[str] = None
    feed_item_id: Optional[str] = None
    site_id: Optional[str] = None

    featured_media_url: Optional[str] = None
    meta_description: Optional[str] = None
    seo_tags: List[str] = Field(default_factory=list)

    # Model/provider/settings snapshot; set only by automated generation
    generation_config: Optional[Dict[str, Any]] = None

    wordpress_post_id: Optional[int] = None
    published_at: Optional[datetime] = None

    last_error: Optional[str] = None
    retry_count: int = 0

    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @property
    def is_auto_generated(self) -> bool:
        return self.generation_config is not None
