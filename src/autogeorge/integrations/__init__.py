"""External service clients."""

from autogeorge.integrations.openai_client import OpenAIClient
from autogeorge.integrations.perplexity_client import PerplexityClient
from autogeorge.integrations.provider_factory import (
    ImageClient,
    LLMClient,
    LLMProvider,
    ProviderFactory,
)
from autogeorge.integrations.wordpress_client import WordPressClient

__all__ = [
    "OpenAIClient",
    "PerplexityClient",
    "ImageClient",
    "LLMClient",
    "LLMProvider",
    "ProviderFactory",
    "WordPressClient",
]
