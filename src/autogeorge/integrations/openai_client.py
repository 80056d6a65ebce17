"""OpenAI API client: fallback chat model and image generation."""

from typing import Any, Dict, Optional

from autogeorge.database.connection import DatabaseConnection
from autogeorge.integrations.base_client import ChatClient
from autogeorge.utils.date_utils import now_utc
from autogeorge.utils.exceptions import AIServiceError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_IMAGE_SIZES = {"1024x1024", "1792x1024", "1024x1792"}


class OpenAIClient(ChatClient):
    """Wrapper for the OpenAI API with usage tracking."""

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        db: Optional[DatabaseConnection],
        run_id: Optional[str],
        default_model: str = "gpt-4o-mini",
        image_model: str = "dall-e-3",
    ):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key.
            db: Database connection for usage tracking.
            run_id: Current pipeline run ID.
            default_model: Default chat model.
            image_model: Image generation model.
        """
        super().__init__(api_key=api_key, db=db, run_id=run_id, default_model=default_model)
        self.image_model = image_model

    async def generate_image(
        self,
        prompt: str,
        size: str = "1792x1024",
        style: str = "natural",
        quality: str = "standard",
        module: str = "image",
    ) -> Dict[str, Any]:
        """Generate an image from a prompt.

        Args:
            prompt: Image description.
            size: Image size; unsupported sizes fall back to 1792x1024.
            style: "natural" or "vivid".
            quality: "standard" or "hd".
            module: Module name for tracking.

        Returns:
            Dict with 'url' and 'revised_prompt'.

        Raises:
            AIServiceError: If generation fails or returns no image.
        """
        if size not in SUPPORTED_IMAGE_SIZES:
            logger.warning("unsupported_image_size", size=size)
            size = "1792x1024"
        if style not in ("natural", "vivid"):
            style = "natural"

        started_at = now_utc()
        logger.info("openai_image_request", model=self.image_model, size=size, style=style)

        try:
            response = await self.client.images.generate(
                model=self.image_model,
                prompt=prompt,
                n=1,
                size=size,
                style=style,
                quality=quality,
            )
            if not response.data or not response.data[0].url:
                raise AIServiceError("No image returned by OpenAI")

            image = response.data[0]
            self._track_api_call(
                module=module,
                model=self.image_model,
                request_type="image_generation",
                input_tokens=0,
                output_tokens=0,
                total_tokens=0,
                success=True,
                started_at=started_at,
            )
            logger.info("openai_image_generated", model=self.image_model)
            return {"url": image.url, "revised_prompt": image.revised_prompt}

        except Exception as e:
            logger.error("openai_image_failed", model=self.image_model, error=str(e))
            self._track_api_call(
                module=module,
                model=self.image_model,
                request_type="image_generation",
                input_tokens=0,
                output_tokens=0,
                total_tokens=0,
                success=False,
                started_at=started_at,
                error_message=str(e),
            )
            if isinstance(e, AIServiceError):
                raise
            raise AIServiceError(f"OpenAI image generation failed: {e}") from e
