"""Source and feed item domain models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from autogeorge.core.enums import FetchStatus, SourceStatus, SourceType
from autogeorge.utils.date_utils import now_utc


class Source(BaseModel):
    """A configured content origin (RSS feed)."""

    id: str
    name: str = Field(..., min_length=1)
    type: SourceType = SourceType.RSS
    url: Optional[str] = None
    status: SourceStatus = SourceStatus.ACTIVE
    site_id: Optional[str] = None

    last_fetch_at: Optional[datetime] = None
    last_fetch_status: Optional[FetchStatus] = None
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @property
    def is_active(self) -> bool:
        return self.status == SourceStatus.ACTIVE

    @property
    def is_pollable(self) -> bool:
        """Only active RSS sources with a URL are polled."""
        return self.is_active and self.type == SourceType.RSS and bool(self.url)


class FeedEntry(BaseModel):
    """A single entry parsed out of a feed document, not yet persisted."""

    title: str = Field(..., min_length=1)
    link: Optional[str] = None
    guid: str = Field(..., min_length=1)
    content: Optional[str] = None
    published_at: Optional[datetime] = None


class FeedItem(BaseModel):
    """A fetched feed entry, pending or already consumed into an article."""

    id: str
    source_id: str
    guid: str
    title: str
    content: Optional[str] = None
    url: Optional[str] = None
    published_at: Optional[datetime] = None
    fetched_at: datetime = Field(default_factory=now_utc)

    processed: bool = False
    article_id: Optional[str] = None

    # Claim lease held by a generation run
    claim_token: Optional[str] = None
    claimed_at: Optional[datetime] = None
