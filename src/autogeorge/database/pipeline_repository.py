"""Stage leases and run bookkeeping."""

import json
from datetime import timedelta
from typing import Any, Dict, List, Optional

from autogeorge.core.enums import RunStatus
from autogeorge.database.connection import DatabaseConnection
from autogeorge.utils.date_utils import now_utc, parse_db_datetime, to_db_datetime
from autogeorge.utils.exceptions import DatabaseError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


class LeaseRepository:
    """One lease row per stage; guards against overlapping cron invocations."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def acquire(self, stage: str, holder: str, ttl_seconds: int) -> bool:
        """Try to take the lease for `stage`.

        Succeeds when no lease exists or the existing one has expired.

        Args:
            stage: Stage name.
            holder: Identifier of the caller (run ID).
            ttl_seconds: Lease lifetime; a crashed run frees the stage after this.

        Returns:
            True if `holder` now owns the lease.
        """
        now = now_utc()
        acquired_at = to_db_datetime(now)
        expires_at = to_db_datetime(now + timedelta(seconds=ttl_seconds))
        try:
            with self.db.transaction() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO stage_leases (stage, holder, acquired_at, expires_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(stage) DO UPDATE SET
                        holder = excluded.holder,
                        acquired_at = excluded.acquired_at,
                        expires_at = excluded.expires_at
                    WHERE stage_leases.expires_at < ?
                    """,
                    (stage, holder, acquired_at, expires_at, acquired_at),
                )
                acquired = cursor.rowcount == 1
        except Exception as e:
            logger.error("acquire_lease_failed", stage=stage, error=str(e))
            raise DatabaseError(f"Failed to acquire stage lease: {e}") from e

        if not acquired:
            logger.warning("stage_lease_busy", stage=stage, holder=self.holder(stage))
        return acquired

    def release(self, stage: str, holder: str) -> None:
        """Release the lease if `holder` still owns it."""
        try:
            self.db.execute(
                "DELETE FROM stage_leases WHERE stage = ? AND holder = ?", (stage, holder)
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("release_lease_failed", stage=stage, error=str(e))
            raise DatabaseError(f"Failed to release stage lease: {e}") from e

    def holder(self, stage: str) -> Optional[str]:
        row = self.db.execute(
            "SELECT holder FROM stage_leases WHERE stage = ?", (stage,)
        ).fetchone()
        return row["holder"] if row else None


class RunRepository:
    """Records one row per stage invocation in pipeline_runs."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def start(self, run_id: str, stage: str) -> None:
        try:
            self.db.execute(
                """
                INSERT INTO pipeline_runs (run_id, stage, status, started_at)
                VALUES (?, ?, ?, ?)
                """,
                (run_id, stage, RunStatus.RUNNING.value, to_db_datetime(now_utc())),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("start_run_failed", run_id=run_id, error=str(e))
            raise DatabaseError(f"Failed to record run start: {e}") from e

    def complete(
        self,
        run_id: str,
        status: RunStatus,
        stats: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
        pending_items: int = 0,
    ) -> None:
        """Close a run.

        `pending_items` is the hand-off signal to the next stage: the number
        of new rows this run left for the next stage's scheduled run.
        """
        try:
            self.db.execute(
                """
                UPDATE pipeline_runs
                SET status = ?, completed_at = ?, stats = ?, error_message = ?, pending_items = ?
                WHERE run_id = ?
                """,
                (
                    RunStatus(status).value,
                    to_db_datetime(now_utc()),
                    json.dumps(stats, default=str) if stats is not None else None,
                    error_message,
                    pending_items,
                    run_id,
                ),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("complete_run_failed", run_id=run_id, error=str(e))
            raise DatabaseError(f"Failed to record run completion: {e}") from e

    def recent(self, stage: Optional[str] = None, limit: int = 20) -> List[Dict[str, Any]]:
        """Latest runs, newest first."""
        query = "SELECT * FROM pipeline_runs"
        params: tuple = ()
        if stage:
            query += " WHERE stage = ?"
            params = (stage,)
        query += " ORDER BY started_at DESC LIMIT ?"
        try:
            rows = self.db.execute(query, params + (limit,)).fetchall()
        except Exception as e:
            raise DatabaseError(f"Failed to read runs: {e}") from e

        return [
            {
                "run_id": row["run_id"],
                "stage": row["stage"],
                "status": row["status"],
                "started_at": parse_db_datetime(row["started_at"]),
                "completed_at": parse_db_datetime(row["completed_at"]),
                "stats": json.loads(row["stats"]) if row["stats"] else None,
                "error_message": row["error_message"],
                "pending_items": row["pending_items"],
            }
            for row in rows
        ]
