"""Image search and prompt models."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from autogeorge.core.enums import SearchLevel
from autogeorge.utils.date_utils import now_utc


class ImageCandidate(BaseModel):
    """A candidate image found by an image search query."""

    url: str
    description: str = ""
    source: str = "unknown"
    relevance_score: int = Field(default=0, ge=0, le=100)


class SearchAttempt(BaseModel):
    """One level of the image search, kept for the search log."""

    level: SearchLevel
    query: Optional[str] = None
    candidates_found: int = 0
    best_score: int = 0
    threshold: Optional[int] = None
    accepted: bool = False
    error: Optional[str] = None


class ImageSearchResult(BaseModel):
    """Outcome of resolving a featured image for an article."""

    url: str = Field(..., min_length=1)
    level: SearchLevel
    score: int = 0
    source: str = "unknown"
    keywords: List[str] = Field(default_factory=list)
    themes: List[str] = Field(default_factory=list)
    is_sensitive: bool = False
    search_log: List[SearchAttempt] = Field(default_factory=list)


class ImagePrompt(BaseModel):
    """Image generation prompt cached per article."""

    article_id: str
    prompt: str = Field(..., min_length=1)
    model: Optional[str] = None
    created_at: datetime = Field(default_factory=now_utc)
