"""Shared OpenAI-compatible chat client with usage tracking."""

import json
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI
from pydantic import BaseModel

from autogeorge.database.connection import DatabaseConnection
from autogeorge.utils.date_utils import now_utc, to_db_datetime
from autogeorge.utils.exceptions import AIServiceError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def extract_json(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of a model reply.

    Models asked for JSON still wrap it in markdown fences or prose now and
    then, so fall back to the outermost braces.

    Raises:
        AIServiceError: If no JSON object can be parsed.
    """
    if not text or not text.strip():
        raise AIServiceError("Empty response from model")

    candidates = [text.strip()]
    fenced = _FENCE_RE.search(text)
    if fenced:
        candidates.append(fenced.group(1).strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    raise AIServiceError("Model response is not a JSON object")


class ChatClient:
    """OpenAI-compatible chat client.

    Subclasses only set the provider name and how structured output is
    requested; request, parsing and tracking are shared.
    """

    provider = "openai"

    def __init__(
        self,
        api_key: str,
        db: Optional[DatabaseConnection],
        run_id: Optional[str],
        default_model: str,
        base_url: Optional[str] = None,
    ):
        """Initialize chat client.

        Args:
            api_key: Provider API key.
            db: Database connection for usage tracking (None disables tracking).
            run_id: Current pipeline run ID.
            default_model: Model used when none is given.
            base_url: API base URL for OpenAI-compatible providers.
        """
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self.db = db
        self.run_id = run_id
        self.default_model = default_model

    def _response_format(self, schema: type[BaseModel]) -> Dict[str, Any]:
        return {"type": "json_object"}

    async def create_completion(
        self,
        messages: List[Dict[str, str]],
        module: str,
        request_type: str,
        model: Optional[str] = None,
        response_format: Optional[type[BaseModel]] = None,
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create a chat completion with usage tracking.

        Args:
            messages: List of message dicts with 'role' and 'content'.
            module: Module name for tracking (e.g., "generator", "image_search").
            request_type: Type of request (e.g., "article", "image_query").
            model: Model to use (defaults to default_model).
            response_format: Pydantic model the JSON reply should follow.
            temperature: Sampling temperature (0.0-2.0).
            max_tokens: Maximum tokens in response.

        Returns:
            Dict with 'content' and 'usage' keys. 'content' is the parsed JSON
            object when response_format is given, else {"text": ...}.

        Raises:
            AIServiceError: If the API call fails or the reply cannot be parsed.
        """
        model = model or self.default_model
        started_at = now_utc()

        logger.info(
            f"{self.provider}_request",
            model=model,
            module=module,
            request_type=request_type,
        )

        try:
            params: Dict[str, Any] = {
                "model": model,
                "messages": messages,
                "temperature": temperature,
            }
            if max_tokens:
                params["max_tokens"] = max_tokens
            if response_format:
                params["response_format"] = self._response_format(response_format)

            response = await self.client.chat.completions.create(**params)
            text = response.choices[0].message.content or ""

            if response_format:
                content: Dict[str, Any] = extract_json(text)
            else:
                content = {"text": text}

            usage = response.usage
            input_tokens = usage.prompt_tokens if usage else 0
            output_tokens = usage.completion_tokens if usage else 0
            total_tokens = usage.total_tokens if usage else 0

            self._track_api_call(
                module=module,
                model=model,
                request_type=request_type,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=total_tokens,
                success=True,
                started_at=started_at,
            )

            logger.info(
                f"{self.provider}_response_success",
                model=model,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

            return {
                "content": content,
                "usage": {
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "total_tokens": total_tokens,
                },
            }

        except Exception as e:
            logger.error(
                f"{self.provider}_request_failed",
                model=model,
                module=module,
                error=str(e),
            )
            self._track_api_call(
                module=module,
                model=model,
                request_type=request_type,
                input_tokens=0,
                output_tokens=0,
                total_tokens=0,
                success=False,
                started_at=started_at,
                error_message=str(e),
            )
            if isinstance(e, AIServiceError):
                raise
            raise AIServiceError(f"{self.provider} API call failed: {e}") from e

    def _track_api_call(
        self,
        module: str,
        model: str,
        request_type: str,
        input_tokens: int,
        output_tokens: int,
        total_tokens: int,
        success: bool,
        started_at: datetime,
        error_message: Optional[str] = None,
    ) -> None:
        """Record the call in api_calls. Tracking never fails the request."""
        if self.db is None:
            return
        duration_ms = int((now_utc() - started_at).total_seconds() * 1000)
        try:
            self.db.execute(
                """
                INSERT INTO api_calls (
                    run_id, module, provider, model, request_type,
                    input_tokens, output_tokens, total_tokens,
                    success, error_message, duration_ms, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    self.run_id,
                    module,
                    self.provider,
                    model,
                    request_type,
                    input_tokens,
                    output_tokens,
                    total_tokens,
                    int(success),
                    error_message,
                    duration_ms,
                    to_db_datetime(started_at),
                ),
            )
            self.db.commit()
        except Exception as e:
            logger.error("failed_to_track_api_call", error=str(e))
