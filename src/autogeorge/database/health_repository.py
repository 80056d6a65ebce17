"""Health check, alert and report repository."""

import json
from datetime import datetime
from typing import List, Optional

from autogeorge.core.enums import AlertSeverity, AlertStatus, HealthStatus
from autogeorge.core.health import HealthCheckRecord, HealthReport, SystemAlert
from autogeorge.database.connection import DatabaseConnection
from autogeorge.utils.date_utils import now_utc, parse_db_datetime, to_db_datetime
from autogeorge.utils.exceptions import DatabaseError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


class HealthRepository:
    """Repository for health monitoring data."""

    def __init__(self, db: DatabaseConnection):
        """Initialize repository.

        Args:
            db: Database connection instance.
        """
        self.db = db

    def save_checks(self, records: List[HealthCheckRecord]) -> None:
        """Store the checks of one monitoring pass.

        Raises:
            DatabaseError: If database operation fails.
        """
        try:
            with self.db.transaction() as conn:
                conn.executemany(
                    """
                    INSERT INTO health_checks (
                        service, status, response_time_ms, details, error, timestamp
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            r.service,
                            r.status.value,
                            r.response_time_ms,
                            json.dumps(r.details, default=str),
                            r.error,
                            to_db_datetime(r.timestamp),
                        )
                        for r in records
                    ],
                )
        except Exception as e:
            logger.error("save_health_checks_failed", error=str(e))
            raise DatabaseError(f"Failed to save health checks: {e}") from e

    def recent_checks(self, since: datetime, limit: int = 144) -> List[HealthCheckRecord]:
        """Checks newer than `since`, newest first."""
        try:
            rows = self.db.execute(
                """
                SELECT * FROM health_checks WHERE timestamp >= ?
                ORDER BY timestamp DESC, id DESC LIMIT ?
                """,
                (to_db_datetime(since), limit),
            ).fetchall()
        except Exception as e:
            raise DatabaseError(f"Failed to read health checks: {e}") from e

        return [
            HealthCheckRecord(
                id=row["id"],
                service=row["service"],
                status=HealthStatus(row["status"]),
                response_time_ms=row["response_time_ms"],
                details=json.loads(row["details"]) if row["details"] else {},
                error=row["error"],
                timestamp=parse_db_datetime(row["timestamp"]),
            )
            for row in rows
        ]

    def alerts_since(self, since: datetime) -> List[SystemAlert]:
        """Alerts triggered after `since`, newest first."""
        try:
            rows = self.db.execute(
                "SELECT * FROM system_alerts WHERE triggered_at >= ? ORDER BY triggered_at DESC",
                (to_db_datetime(since),),
            ).fetchall()
            return [self._row_to_alert(row) for row in rows]
        except Exception as e:
            raise DatabaseError(f"Failed to read alerts: {e}") from e

    def active_alert(self, service: str) -> Optional[SystemAlert]:
        """The open alert for a service, if any."""
        try:
            row = self.db.execute(
                "SELECT * FROM system_alerts WHERE service = ? AND status = ? LIMIT 1",
                (service, AlertStatus.ACTIVE.value),
            ).fetchone()
            return self._row_to_alert(row) if row else None
        except Exception as e:
            raise DatabaseError(f"Failed to read alerts: {e}") from e

    def create_alert(self, alert: SystemAlert) -> SystemAlert:
        """Open an alert."""
        try:
            cursor = self.db.execute(
                """
                INSERT INTO system_alerts (
                    service, severity, status, title, message, triggered_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    alert.service,
                    alert.severity.value,
                    alert.status.value,
                    alert.title,
                    alert.message,
                    to_db_datetime(alert.triggered_at),
                ),
            )
            self.db.commit()
            logger.warning("system_alert_triggered", service=alert.service, severity=alert.severity.value)
            return alert.model_copy(update={"id": cursor.lastrowid})
        except Exception as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to create alert: {e}") from e

    def resolve_alert(self, alert_id: int) -> None:
        """Mark an alert resolved."""
        try:
            self.db.execute(
                "UPDATE system_alerts SET status = ?, resolved_at = ? WHERE id = ?",
                (AlertStatus.RESOLVED.value, to_db_datetime(now_utc()), alert_id),
            )
            self.db.commit()
            logger.info("system_alert_resolved", alert_id=alert_id)
        except Exception as e:
            self.db.rollback()
            raise DatabaseError(f"Failed to resolve alert: {e}") from e

    def save_report(self, report: HealthReport) -> HealthReport:
        """Store a generated health report."""
        try:
            cursor = self.db.execute(
                """
                INSERT INTO health_reports (
                    report_type, period_start, period_end, overall_status,
                    uptime_percentage, total_checks, critical_alerts, email_sent, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    report.report_type,
                    to_db_datetime(report.period_start),
                    to_db_datetime(report.period_end),
                    report.overall_status.value,
                    report.uptime_percentage,
                    report.total_checks,
                    report.critical_alerts,
                    int(report.email_sent),
                    to_db_datetime(report.created_at),
                ),
            )
            self.db.commit()
            return report.model_copy(update={"id": cursor.lastrowid})
        except Exception as e:
            self.db.rollback()
            logger.error("save_health_report_failed", error=str(e))
            raise DatabaseError(f"Failed to save health report: {e}") from e

    def _row_to_alert(self, row) -> SystemAlert:
        return SystemAlert(
            id=row["id"],
            service=row["service"],
            severity=AlertSeverity(row["severity"]),
            status=AlertStatus(row["status"]),
            title=row["title"],
            message=row["message"] or "",
            triggered_at=parse_db_datetime(row["triggered_at"]),
            resolved_at=parse_db_datetime(row["resolved_at"]),
        )
