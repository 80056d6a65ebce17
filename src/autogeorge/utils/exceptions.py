"""Custom exceptions for AutoGeorge."""

from typing import Optional


class AutoGeorgeError(Exception):
    """Base exception for AutoGeorge."""


class ConfigurationError(AutoGeorgeError):
    """Configuration error."""


class PipelineError(AutoGeorgeError):
    """Pipeline execution error."""


class CollectorError(PipelineError):
    """Feed collection error."""


class GenerationError(PipelineError):
    """Article generation error."""


class ImageError(PipelineError):
    """Featured image resolution error."""


class PublishError(PipelineError):
    """Publishing error."""


class InvalidTransitionError(PipelineError):
    """Article status transition not allowed by the workflow."""


class StageLockedError(PipelineError):
    """Another invocation of the same stage holds the lease."""

    def __init__(self, stage: str, holder: Optional[str] = None):
        self.stage = stage
        self.holder = holder
        super().__init__(f"Stage {stage} is already running (holder={holder})")


class DatabaseError(AutoGeorgeError):
    """Database operation error."""


class APIError(AutoGeorgeError):
    """External API error."""


class AIServiceError(APIError):
    """AI service error."""


class WordPressError(APIError):
    """WordPress REST API error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class EmailError(APIError):
    """Email delivery error."""


class RateLimitError(APIError):
    """Rate limit exceeded error."""


class ValidationError(AutoGeorgeError):
    """Data validation error."""
