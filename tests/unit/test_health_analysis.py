# tests/unit/test_health_analysis.py
"""Unit tests for health aggregation and the HTML report."""

from datetime import timedelta

import pytest

from autogeorge.core.enums import AlertSeverity, HealthStatus
from autogeorge.core.health import HealthCheckRecord, HealthSnapshot, ServiceCheck, SystemAlert
from autogeorge.services.health_service import analyze, overall_status
from autogeorge.services.report_formatter import HealthReportFormatter
from autogeorge.utils.date_utils import now_utc


def _check(status: HealthStatus, response_ms: int = 100) -> HealthCheckRecord:
    return HealthCheckRecord(service="database", status=status, response_time_ms=response_ms)


def _snapshot(*statuses: HealthStatus) -> HealthSnapshot:
    checks = [
        ServiceCheck(service=f"svc-{i}", status=status) for i, status in enumerate(statuses)
    ]
    return HealthSnapshot(overall=overall_status(checks), checks=checks)


@pytest.mark.unit
class TestOverallStatus:
    """Tests for overall_status."""

    def test_worst_status_wins(self):
        """Should report the worst status among the checks."""
        healthy = ServiceCheck(service="a", status=HealthStatus.HEALTHY)
        degraded = ServiceCheck(service="b", status=HealthStatus.DEGRADED)
        unhealthy = ServiceCheck(service="c", status=HealthStatus.UNHEALTHY)

        assert overall_status([healthy]) == HealthStatus.HEALTHY
        assert overall_status([healthy, degraded]) == HealthStatus.DEGRADED
        assert overall_status([degraded, unhealthy, healthy]) == HealthStatus.UNHEALTHY
        assert overall_status([]) == HealthStatus.HEALTHY


@pytest.mark.unit
class TestAnalyze:
    """Tests for analyze."""

    def test_uptime_and_response_time(self):
        """Should compute rounded uptime and mean response time."""
        checks = [
            _check(HealthStatus.HEALTHY, 100),
            _check(HealthStatus.HEALTHY, 200),
            _check(HealthStatus.UNHEALTHY, 1000),
        ]
        analysis = analyze(checks, [], _snapshot(HealthStatus.HEALTHY))

        assert analysis.total_checks == 3
        assert analysis.healthy_checks == 2
        assert analysis.uptime_percentage == 67
        assert analysis.average_response_time_ms == 433

    def test_empty_window(self):
        """Should report full uptime when nothing was recorded."""
        analysis = analyze([], [], _snapshot(HealthStatus.HEALTHY))
        assert analysis.uptime_percentage == 100
        assert analysis.average_response_time_ms == 0
        assert analysis.trend == "stable"

    def test_trend(self):
        """Should compare the newest checks with the oldest ones."""
        recovering = [_check(HealthStatus.HEALTHY)] * 12 + [_check(HealthStatus.UNHEALTHY)] * 12
        worsening = list(reversed(recovering))

        assert analyze(recovering, [], _snapshot()).trend == "improving"
        assert analyze(worsening, [], _snapshot()).trend == "degrading"

    def test_alert_counters(self):
        """Should count alerts by severity and resolution."""
        alerts = [
            SystemAlert(service="db", severity=AlertSeverity.CRITICAL, title="down"),
            SystemAlert(
                service="rss",
                severity=AlertSeverity.HIGH,
                title="rss",
                resolved_at=now_utc() - timedelta(hours=1),
            ),
            SystemAlert(service="pipeline", severity=AlertSeverity.MEDIUM, title="slow"),
        ]
        analysis = analyze([], alerts, _snapshot())

        assert analysis.alerts_total == 3
        assert analysis.alerts_critical == 1
        assert analysis.alerts_high == 1
        assert analysis.alerts_resolved == 1
        assert analysis.alerts_active == 2


@pytest.mark.unit
class TestHealthReportFormatter:
    """Tests for HealthReportFormatter."""

    def test_render(self):
        """Should render status, uptime and every service."""
        snapshot = HealthSnapshot(
            overall=HealthStatus.DEGRADED,
            checks=[
                ServiceCheck(service="database", status=HealthStatus.HEALTHY),
                ServiceCheck(
                    service="rss-sources",
                    status=HealthStatus.DEGRADED,
                    error="<timeout>",
                ),
            ],
        )
        analysis = analyze([_check(HealthStatus.HEALTHY)] * 3, [], snapshot)

        html = HealthReportFormatter().format(analysis, period_hours=12)

        assert "DEGRADED" in html
        assert "100%" in html
        assert "database" in html
        assert "rss-sources" in html
        assert "Ultime 12 ore" in html
        # Errors are escaped
        assert "&lt;timeout&gt;" in html
