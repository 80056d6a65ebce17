"""Services module."""

from autogeorge.services.config_loader import (
    load_prompt_config,
    load_prompt_templates,
    load_sources_config,
    load_yaml,
)
from autogeorge.services.email_service import EmailResult, ResendEmailService
from autogeorge.services.health_service import HealthService
from autogeorge.services.report_formatter import HealthReportFormatter

__all__ = [
    "EmailResult",
    "HealthReportFormatter",
    "HealthService",
    "ResendEmailService",
    "load_prompt_config",
    "load_prompt_templates",
    "load_sources_config",
    "load_yaml",
]
