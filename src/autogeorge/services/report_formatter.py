"""HTML health report formatter."""

from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from autogeorge.core.enums import HealthStatus
from autogeorge.core.health import HealthAnalysis
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

STATUS_COLORS = {
    HealthStatus.HEALTHY: "#16a34a",
    HealthStatus.DEGRADED: "#d97706",
    HealthStatus.UNHEALTHY: "#dc2626",
}

TREND_LABELS = {
    "improving": "In miglioramento",
    "degrading": "In peggioramento",
    "stable": "Stabile",
}


class HealthReportFormatter:
    """Render a health analysis as an HTML email body."""

    def __init__(self, template_dir: Optional[Path] = None):
        """Initialize formatter.

        Args:
            template_dir: Directory containing Jinja2 templates.
                         Defaults to the packaged templates/.
        """
        self.template_dir = template_dir or TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def format(self, analysis: HealthAnalysis, period_hours: int = 12) -> str:
        """Render the report.

        Args:
            analysis: Aggregated health window.
            period_hours: Length of the reporting window.

        Returns:
            HTML string.
        """
        template = self.env.get_template("health_report.html")
        html = template.render(**self._build_context(analysis, period_hours))
        logger.info("health_report_formatted", size=len(html))
        return html

    def _build_context(self, analysis: HealthAnalysis, period_hours: int) -> Dict[str, Any]:
        current = analysis.current
        return {
            "overall": current.overall.value,
            "overall_color": STATUS_COLORS[current.overall],
            "generated_at": current.timestamp.strftime("%d.%m.%Y %H:%M UTC"),
            "period_hours": period_hours,
            "analysis": analysis,
            "trend_label": TREND_LABELS.get(analysis.trend, analysis.trend),
            "checks": [
                {
                    "service": check.service,
                    "status": check.status.value,
                    "color": STATUS_COLORS[check.status],
                    "response_time_ms": check.response_time_ms,
                    "error": check.error,
                    "details": check.details,
                }
                for check in current.checks
            ],
        }
