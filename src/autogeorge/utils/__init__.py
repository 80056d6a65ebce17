"""Utility modules for AutoGeorge."""

from autogeorge.utils.date_utils import (
    hours_ago,
    is_within_hours,
    now_utc,
    parse_date,
    parse_db_datetime,
    to_db_datetime,
)
from autogeorge.utils.exceptions import (
    AIServiceError,
    APIError,
    AutoGeorgeError,
    CollectorError,
    ConfigurationError,
    DatabaseError,
    EmailError,
    GenerationError,
    ImageError,
    InvalidTransitionError,
    PipelineError,
    PublishError,
    RateLimitError,
    StageLockedError,
    ValidationError,
    WordPressError,
)
from autogeorge.utils.logging import get_logger, setup_logging
from autogeorge.utils.text_utils import (
    clean_whitespace,
    extract_domain,
    strip_html,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Exceptions
    "AutoGeorgeError",
    "ConfigurationError",
    "PipelineError",
    "CollectorError",
    "GenerationError",
    "ImageError",
    "PublishError",
    "InvalidTransitionError",
    "StageLockedError",
    "DatabaseError",
    "APIError",
    "AIServiceError",
    "WordPressError",
    "EmailError",
    "RateLimitError",
    "ValidationError",
    # Date utils
    "parse_date",
    "parse_db_datetime",
    "to_db_datetime",
    "now_utc",
    "hours_ago",
    "is_within_hours",
    # Text utils
    "clean_whitespace",
    "strip_html",
    "extract_domain",
]
