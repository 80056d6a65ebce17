"""Perplexity API client - OpenAI-compatible wrapper with usage tracking."""

from typing import Any, Dict, Optional

from pydantic import BaseModel

from autogeorge.database.connection import DatabaseConnection
from autogeorge.integrations.base_client import ChatClient
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


class PerplexityClient(ChatClient):
    """Perplexity API client using the OpenAI client library.

    Perplexity's online models answer with web search results folded in,
    which is what both article generation and image search rely on.
    """

    provider = "perplexity"

    def __init__(
        self,
        api_key: str,
        db: Optional[DatabaseConnection],
        run_id: Optional[str],
        base_url: str = "https://api.perplexity.ai",
        default_model: str = "sonar",
    ):
        """Initialize Perplexity client.

        Args:
            api_key: Perplexity API key.
            db: Database connection for usage tracking.
            run_id: Current pipeline run ID.
            base_url: Perplexity API base URL.
            default_model: Default model to use.
        """
        super().__init__(
            api_key=api_key,
            db=db,
            run_id=run_id,
            default_model=default_model,
            base_url=base_url,
        )
        logger.info("perplexity_client_initialized", base_url=base_url, model=default_model)

    def _response_format(self, schema: type[BaseModel]) -> Dict[str, Any]:
        # Perplexity has no json_object mode, only JSON schema
        return {
            "type": "json_schema",
            "json_schema": {"schema": schema.model_json_schema(by_alias=True)},
        }
