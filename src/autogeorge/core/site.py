"""WordPress site and automation settings models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from autogeorge.utils.date_utils import now_utc


class WordPressSite(BaseModel):
    """Target WordPress site and the automation flags configured on it."""

    id: str
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    username: str
    password: str = Field(..., repr=False)

    default_category: Optional[str] = None
    default_status: Optional[str] = "draft"
    default_author: Optional[str] = None

    enable_auto_generation: bool = False
    enable_featured_image: bool = True
    enable_auto_publish: bool = False
    is_active: bool = True

    last_publish_at: Optional[datetime] = None
    last_error: Optional[str] = None

    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @property
    def api_base(self) -> str:
        return self.url.rstrip("/") + "/wp-json/wp/v2"

    def automation_settings(self) -> "AutomationSettings":
        return AutomationSettings(
            site_id=self.id,
            enable_auto_generation=self.enable_auto_generation,
            enable_featured_image=self.enable_featured_image,
            enable_auto_publish=self.enable_auto_publish,
        )

    def public_dict(self) -> dict:
        """Site fields safe to return over the API (no credentials)."""
        return self.model_dump(mode="json", exclude={"password"})


class AutomationSettings(BaseModel):
    """Snapshot of the automation flags handed to each stage.

    Stages never look up the site themselves; the runner reads the active
    site once and passes this object down.
    """

    site_id: Optional[str] = None
    enable_auto_generation: bool = False
    enable_featured_image: bool = False
    enable_auto_publish: bool = False

    model_config = {"frozen": True}


class GenerationSettings(BaseModel):
    """LLM and image parameters for article generation."""

    model: str = "sonar"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)
    language: str = "it"
    tone: str = "professionale"
    style: str = "giornalistico"
    target_audience: str = "generale"

    image_style: str = "natural"
    image_size: str = "1792x1024"
    custom_image_prompt: Optional[str] = None
