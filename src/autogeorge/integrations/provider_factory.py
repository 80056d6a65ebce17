"""LLM provider factory with fallback support."""

from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel

from autogeorge.core.config import Config
from autogeorge.database.connection import DatabaseConnection
from autogeorge.integrations.openai_client import OpenAIClient
from autogeorge.integrations.perplexity_client import PerplexityClient
from autogeorge.utils.exceptions import ConfigurationError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


class LLMProvider(str, Enum):
    """Available LLM providers."""

    PERPLEXITY = "perplexity"
    OPENAI = "openai"


class LLMClient(Protocol):
    """Protocol for LLM clients - ensures consistent interface."""

    provider: str

    async def create_completion(
        self,
        messages: List[Dict[str, str]],
        module: str,
        request_type: str,
        model: Optional[str] = None,
        response_format: Optional[type[BaseModel]] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]: ...


class ImageClient(Protocol):
    """Protocol for image generation clients."""

    async def generate_image(
        self,
        prompt: str,
        size: str = "1792x1024",
        style: str = "natural",
        quality: str = "standard",
        module: str = "image",
    ) -> Dict[str, Any]: ...


class ProviderFactory:
    """Factory for creating LLM clients with fallback support."""

    def __init__(self, config: Config, db: DatabaseConnection, run_id: Optional[str] = None):
        """Initialize factory.

        Args:
            config: Application configuration.
            db: Database connection.
            run_id: Pipeline run ID used for usage tracking.
        """
        self.config = config
        self.db = db
        self.run_id = run_id
        self._clients: Dict[str, Any] = {}

    def get_generation_client(self) -> LLMClient:
        """Get client for article generation.

        Uses the configured provider (Perplexity by default) and falls back
        to OpenAI if its key is missing.

        Raises:
            ConfigurationError: If neither provider is configured.
        """
        provider = LLMProvider(self.config.generation_provider)
        return self._get_or_create_client(provider, fallback=LLMProvider.OPENAI)

    def get_search_client(self) -> LLMClient:
        """Get client for image search queries (web-connected Perplexity model).

        Raises:
            ConfigurationError: If Perplexity is not configured.
        """
        return self._get_or_create_client(LLMProvider.PERPLEXITY, fallback=None)

    def get_image_client(self) -> Optional[ImageClient]:
        """Get client for image generation, None when OpenAI is not configured."""
        if "image" not in self._clients:
            client = self._create_client(LLMProvider.OPENAI)
            if client is None:
                return None
            self._clients["image"] = client
        return self._clients["image"]

    def _get_or_create_client(
        self,
        provider: LLMProvider,
        fallback: Optional[LLMProvider] = None,
    ) -> LLMClient:
        if provider.value in self._clients:
            return self._clients[provider.value]

        client = self._create_client(provider)

        if client is None and fallback:
            logger.warning(
                "provider_unavailable_using_fallback",
                requested=provider.value,
                fallback=fallback.value,
            )
            client = self._create_client(fallback)

        if client is None:
            raise ConfigurationError(f"No LLM client available for {provider.value}")

        self._clients[provider.value] = client
        return client

    def _create_client(self, provider: LLMProvider) -> Optional[Any]:
        if provider == LLMProvider.PERPLEXITY:
            if not self.config.perplexity_api_key:
                logger.warning("perplexity_api_key_not_configured")
                return None
            return PerplexityClient(
                api_key=self.config.perplexity_api_key,
                db=self.db,
                run_id=self.run_id,
                base_url=self.config.perplexity_base_url,
                default_model=self.config.perplexity_model,
            )

        if provider == LLMProvider.OPENAI:
            if not self.config.openai_api_key:
                logger.warning("openai_api_key_not_configured")
                return None
            return OpenAIClient(
                api_key=self.config.openai_api_key,
                db=self.db,
                run_id=self.run_id,
                default_model=self.config.openai_model,
                image_model=self.config.openai_image_model,
            )

        return None
