"""Health monitoring models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from autogeorge.core.enums import AlertSeverity, AlertStatus, HealthStatus
from autogeorge.utils.date_utils import now_utc


class ServiceCheck(BaseModel):
    """Result of checking one service."""

    service: str
    status: HealthStatus
    response_time_ms: int = 0
    details: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None


class HealthSnapshot(BaseModel):
    """All service checks taken at one point in time."""

    overall: HealthStatus
    checks: List[ServiceCheck]
    timestamp: datetime = Field(default_factory=now_utc)

    @property
    def summary(self) -> Dict[str, int]:
        return {
            "healthy": sum(1 for c in self.checks if c.status == HealthStatus.HEALTHY),
            "degraded": sum(1 for c in self.checks if c.status == HealthStatus.DEGRADED),
            "unhealthy": sum(1 for c in self.checks if c.status == HealthStatus.UNHEALTHY),
            "total": len(self.checks),
        }


class HealthCheckRecord(BaseModel):
    """A persisted service check."""

    id: Optional[int] = None
    service: str
    status: HealthStatus
    response_time_ms: int = 0
    details: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    timestamp: datetime = Field(default_factory=now_utc)


class SystemAlert(BaseModel):
    """An alert raised when a service stops being healthy."""

    id: Optional[int] = None
    service: str
    severity: AlertSeverity
    status: AlertStatus = AlertStatus.ACTIVE
    title: str
    message: str = ""
    triggered_at: datetime = Field(default_factory=now_utc)
    resolved_at: Optional[datetime] = None


class HealthAnalysis(BaseModel):
    """Aggregated view of a reporting window."""

    total_checks: int
    uptime_percentage: int
    healthy_checks: int
    average_response_time_ms: int
    alerts_total: int
    alerts_critical: int
    alerts_high: int
    alerts_resolved: int
    trend: str
    current: HealthSnapshot

    @property
    def alerts_active(self) -> int:
        return self.alerts_total - self.alerts_resolved


class HealthReport(BaseModel):
    """A saved 12h summary report."""

    id: Optional[int] = None
    report_type: str = "summary_12h"
    period_start: datetime
    period_end: datetime
    overall_status: HealthStatus
    uptime_percentage: int
    total_checks: int
    critical_alerts: int
    email_sent: bool = False
    created_at: datetime = Field(default_factory=now_utc)
