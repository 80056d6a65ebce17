"""Health checks, alerting and the periodic health report."""

import time
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from autogeorge.core.config import Config
from autogeorge.core.enums import AlertSeverity, ArticleStatus, FetchStatus, HealthStatus
from autogeorge.core.health import (
    HealthAnalysis,
    HealthCheckRecord,
    HealthReport,
    HealthSnapshot,
    ServiceCheck,
    SystemAlert,
)
from autogeorge.database.article_repository import ArticleRepository
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.feed_item_repository import FeedItemRepository
from autogeorge.database.health_repository import HealthRepository
from autogeorge.database.source_repository import SourceRepository
from autogeorge.services.email_service import ResendEmailService
from autogeorge.services.report_formatter import HealthReportFormatter
from autogeorge.utils.date_utils import is_within_hours, now_utc
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

REPORT_WINDOW_HOURS = 12
# One check every 5 minutes over the window
REPORT_MAX_CHECKS = 144
TREND_SAMPLE = 12
RSS_RECENT_HOURS = 2
# Reported for a check that raised before it could time itself
FAILED_CHECK_RESPONSE_MS = 1000

_SEVERITY_BY_OVERALL = {
    HealthStatus.HEALTHY: "low",
    HealthStatus.DEGRADED: "medium",
    HealthStatus.UNHEALTHY: "high",
}


def overall_status(checks: List[ServiceCheck]) -> HealthStatus:
    """Worst status wins."""
    statuses = {check.status for check in checks}
    if HealthStatus.UNHEALTHY in statuses:
        return HealthStatus.UNHEALTHY
    if HealthStatus.DEGRADED in statuses:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


def analyze(
    checks: List[HealthCheckRecord],
    alerts: List[SystemAlert],
    current: HealthSnapshot,
) -> HealthAnalysis:
    """Aggregate a window of stored checks and alerts.

    Args:
        checks: Stored checks, newest first.
        alerts: Alerts triggered in the window.
        current: Snapshot taken now.

    Returns:
        HealthAnalysis for the window.
    """
    total = len(checks)
    healthy = sum(1 for c in checks if c.status == HealthStatus.HEALTHY)
    uptime = round(healthy / total * 100) if total else 100
    avg_response = round(sum(c.response_time_ms for c in checks) / total) if total else 0

    recent_healthy = sum(1 for c in checks[:TREND_SAMPLE] if c.status == HealthStatus.HEALTHY)
    earlier_healthy = sum(1 for c in checks[-TREND_SAMPLE:] if c.status == HealthStatus.HEALTHY)
    if recent_healthy > earlier_healthy:
        trend = "improving"
    elif recent_healthy < earlier_healthy:
        trend = "degrading"
    else:
        trend = "stable"

    return HealthAnalysis(
        total_checks=total,
        uptime_percentage=uptime,
        healthy_checks=healthy,
        average_response_time_ms=avg_response,
        alerts_total=len(alerts),
        alerts_critical=sum(1 for a in alerts if a.severity == AlertSeverity.CRITICAL),
        alerts_high=sum(1 for a in alerts if a.severity == AlertSeverity.HIGH),
        alerts_resolved=sum(1 for a in alerts if a.resolved_at is not None),
        trend=trend,
        current=current,
    )


class HealthService:
    """Service checks behind the health-monitor and health-report stages."""

    def __init__(
        self,
        config: Config,
        db: DatabaseConnection,
        email_service: Optional[ResendEmailService] = None,
        formatter: Optional[HealthReportFormatter] = None,
    ):
        """Initialize health service.

        Args:
            config: Application configuration.
            db: Database connection.
            email_service: Mail sender; built from config when omitted.
            formatter: HTML report formatter.
        """
        self.config = config
        self.db = db
        self.sources = SourceRepository(db)
        self.feed_items = FeedItemRepository(db)
        self.articles = ArticleRepository(db)
        self.health = HealthRepository(db)
        self.email_service = email_service
        self.formatter = formatter or HealthReportFormatter()

    def current_health(self) -> HealthSnapshot:
        """Run every service check now."""
        checks = [
            self._timed("database", self._check_database),
            self._timed("core-data", self._check_core_data),
            self._timed("rss-sources", self._check_rss_sources),
            self._timed("pipeline", self._check_pipeline),
        ]
        return HealthSnapshot(overall=overall_status(checks), checks=checks)

    def monitor(self) -> Dict[str, Any]:
        """Store a check pass and open or resolve alerts.

        Returns:
            Dict with overall status, checks and alert counters.
        """
        logger.info("stage_health_monitor_starting")
        snapshot = self.current_health()
        self.health.save_checks(
            [
                HealthCheckRecord(
                    service=c.service,
                    status=c.status,
                    response_time_ms=c.response_time_ms,
                    details=c.details,
                    error=c.error,
                    timestamp=snapshot.timestamp,
                )
                for c in snapshot.checks
            ]
        )

        triggered = 0
        resolved = 0
        for check in snapshot.checks:
            active = self.health.active_alert(check.service)
            if check.status == HealthStatus.HEALTHY:
                if active is not None and active.id is not None:
                    self.health.resolve_alert(active.id)
                    resolved += 1
                continue
            if active is None:
                severity = (
                    AlertSeverity.HIGH
                    if check.status == HealthStatus.UNHEALTHY
                    else AlertSeverity.MEDIUM
                )
                self.health.create_alert(
                    SystemAlert(
                        service=check.service,
                        severity=severity,
                        title=f"{check.service} is {check.status.value}",
                        message=check.error or "",
                    )
                )
                triggered += 1

        logger.info(
            "stage_health_monitor_complete",
            overall=snapshot.overall.value,
            alerts_triggered=triggered,
            alerts_resolved=resolved,
        )
        return {
            "overall": snapshot.overall.value,
            "checks": [c.model_dump(mode="json") for c in snapshot.checks],
            "summary": snapshot.summary,
            "alerts_triggered": triggered,
            "alerts_resolved": resolved,
        }

    async def report(self) -> Dict[str, Any]:
        """Build, optionally mail, and store the 12h health report.

        Returns:
            Summary dict including `email_sent`.
        """
        logger.info("stage_health_report_starting")
        period_end = now_utc()
        period_start = period_end - timedelta(hours=REPORT_WINDOW_HOURS)

        checks = self.health.recent_checks(period_start, limit=REPORT_MAX_CHECKS)
        alerts = self.health.alerts_since(period_start)
        current = self.current_health()
        analysis = analyze(checks, alerts, current)

        email_sent = False
        if self.config.email_enabled:
            email_sent = await self._send_report(analysis)
        else:
            logger.info("health_report_email_skipped", reason="notifications disabled or no recipients")

        report = self.health.save_report(
            HealthReport(
                period_start=period_start,
                period_end=period_end,
                overall_status=current.overall,
                uptime_percentage=analysis.uptime_percentage,
                total_checks=analysis.total_checks,
                critical_alerts=analysis.alerts_critical,
                email_sent=email_sent,
            )
        )

        logger.info(
            "stage_health_report_complete",
            overall=current.overall.value,
            uptime=analysis.uptime_percentage,
            email_sent=email_sent,
        )
        return {
            "report_id": report.id,
            "period": f"{REPORT_WINDOW_HOURS}h",
            "overall": current.overall.value,
            "uptime_percentage": analysis.uptime_percentage,
            "total_checks": analysis.total_checks,
            "average_response_time_ms": analysis.average_response_time_ms,
            "alerts": {
                "total": analysis.alerts_total,
                "critical": analysis.alerts_critical,
                "high": analysis.alerts_high,
                "resolved": analysis.alerts_resolved,
                "active": analysis.alerts_active,
            },
            "trend": analysis.trend,
            "email_sent": email_sent,
        }

    async def _send_report(self, analysis: HealthAnalysis) -> bool:
        overall = analysis.current.overall
        html = self.formatter.format(analysis, period_hours=REPORT_WINDOW_HOURS)
        subject = f"AutoGeorge Health Report - {overall.value.upper()}"
        service = self.email_service or ResendEmailService(
            api_key=self.config.resend_api_key,
            sender=self.config.email_from,
            api_url=self.config.resend_api_url,
        )
        async with service:
            result = await service.send_html_email(
                to=self.config.email_recipient_list,
                subject=subject,
                html_body=html,
            )
        logger.info(
            "health_report_email",
            success=result.success,
            severity=_SEVERITY_BY_OVERALL[overall],
            message=result.message,
        )
        return result.success

    def _timed(self, service: str, check: Callable[[], ServiceCheck]) -> ServiceCheck:
        started = time.perf_counter()
        try:
            result = check()
        except Exception as e:
            logger.error("health_check_failed", service=service, error=str(e))
            return ServiceCheck(
                service=service,
                status=HealthStatus.UNHEALTHY,
                response_time_ms=FAILED_CHECK_RESPONSE_MS,
                error=str(e),
            )
        result.response_time_ms = int((time.perf_counter() - started) * 1000)
        return result

    def _check_database(self) -> ServiceCheck:
        self.db.execute("SELECT 1").fetchone()
        return ServiceCheck(
            service="database",
            status=HealthStatus.HEALTHY,
            details={"sources": self.sources.count(), "articles": self.articles.count()},
        )

    def _check_core_data(self) -> ServiceCheck:
        return ServiceCheck(
            service="core-data",
            status=HealthStatus.HEALTHY,
            details={
                "sources": self.sources.count(),
                "active_sources": self.sources.count(active_only=True),
                "feed_items": self.feed_items.count(),
            },
        )

    def _check_rss_sources(self) -> ServiceCheck:
        active = [s for s in self.sources.list_all() if s.is_active]
        recent = [
            s
            for s in active
            if s.last_fetch_at is not None
            and is_within_hours(s.last_fetch_at, RSS_RECENT_HOURS)
            and s.last_fetch_status == FetchStatus.SUCCESS
        ]
        if not active or len(recent) == len(active):
            status = HealthStatus.HEALTHY
        elif recent:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.UNHEALTHY
        return ServiceCheck(
            service="rss-sources",
            status=status,
            details={"total": len(active), "recent_successful": len(recent)},
        )

    def _check_pipeline(self) -> ServiceCheck:
        counts = self.articles.count_by_status()
        failed = counts.get(ArticleStatus.FAILED.value, 0)
        status = (
            HealthStatus.DEGRADED
            if failed > self.config.failed_articles_threshold
            else HealthStatus.HEALTHY
        )
        return ServiceCheck(service="pipeline", status=status, details={"articles": counts})
