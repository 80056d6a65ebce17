"""Configuration models."""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from autogeorge.core.enums import ImageMode, SourceType


class Config(BaseSettings):
    """Main application configuration from environment variables."""

    # Cron endpoint protection (empty = open, for local cron simulators)
    cron_secret: Optional[str] = Field(default=None)

    # Perplexity (article and image-query generation)
    perplexity_api_key: Optional[str] = Field(default=None)
    perplexity_base_url: str = "https://api.perplexity.ai"
    perplexity_model: str = "sonar"
    perplexity_search_model: str = "sonar-pro"

    # OpenAI (image generation, fallback LLM)
    openai_api_key: Optional[str] = Field(default=None)
    openai_model: str = "gpt-4o-mini"
    openai_image_model: str = "dall-e-3"

    # LLM provider selection
    generation_provider: Literal["perplexity", "openai"] = "perplexity"

    # Database
    db_path: Path = Path("./autogeorge.db")

    # Feed polling
    poll_max_sources: int = Field(default=100, gt=0)
    poll_batch_size: int = Field(default=3, gt=0)
    poll_batch_delay_sec: float = Field(default=2.0, ge=0.0)
    request_timeout_sec: float = Field(default=10.0, gt=0)
    max_items_per_feed: int = Field(default=10, gt=0)
    feed_user_agent: str = "AutoGeorge RSS Bot/1.0"

    # Generation
    generate_batch_size: int = Field(default=50, gt=0)
    auto_generation_batch_size: int = Field(default=3, gt=0)

    # Featured images
    image_mode: ImageMode = ImageMode.AI
    image_batch_size: int = Field(default=5, gt=0)
    image_delay_sec: float = Field(default=3.0, ge=0.0)

    # Publishing
    publish_batch_size: int = Field(default=10, gt=0)
    publish_delay_sec: float = Field(default=2.0, ge=0.0)
    wordpress_timeout_sec: float = Field(default=30.0, gt=0)

    # Claims and leases
    stage_lease_ttl_sec: int = Field(default=600, gt=0)
    claim_ttl_sec: int = Field(default=900, gt=0)

    # Health
    failed_articles_threshold: int = Field(default=10, ge=0)

    # Email (Resend)
    email_notifications_enabled: bool = False
    email_recipients: Optional[str] = Field(
        default=None,
        description="Comma-separated list of email recipients",
    )
    email_from: str = "AutoGeorge <noreply@resend.dev>"
    resend_api_key: Optional[str] = Field(default=None)
    resend_api_url: str = "https://api.resend.com/emails"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"
    log_dir: Optional[Path] = None

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    @property
    def email_recipient_list(self) -> List[str]:
        """Get list of email recipients."""
        if not self.email_recipients:
            return []
        return [r.strip() for r in self.email_recipients.split(",") if r.strip()]

    @property
    def email_enabled(self) -> bool:
        """Reports are mailed only when switched on and someone will receive them."""
        return self.email_notifications_enabled and bool(self.email_recipient_list)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def validate_paths(self) -> None:
        """Create directories the configuration points at."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        if self.log_dir:
            self.log_dir.mkdir(parents=True, exist_ok=True)


class PromptConfig(BaseModel):
    """Prompt template configuration.

    Templates use str.format placeholders; literal braces are doubled.
    """

    system_prompt: str
    user_prompt_template: str
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)


class SourceConfig(BaseModel):
    """A source declared in a sources YAML file."""

    name: str = Field(..., min_length=1)
    url: HttpUrl
    type: SourceType = SourceType.RSS
    enabled: bool = True
