"""Source repository for database operations."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from autogeorge.core.enums import FetchStatus, SourceStatus, SourceType
from autogeorge.core.feed import Source
from autogeorge.database.connection import DatabaseConnection
from autogeorge.utils.date_utils import now_utc, parse_db_datetime, to_db_datetime
from autogeorge.utils.exceptions import DatabaseError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


class SourceRepository:
    """Repository for content sources."""

    def __init__(self, db: DatabaseConnection):
        """Initialize repository.

        Args:
            db: Database connection instance.
        """
        self.db = db

    def create(
        self,
        name: str,
        url: Optional[str],
        source_type: SourceType = SourceType.RSS,
        status: SourceStatus = SourceStatus.ACTIVE,
        site_id: Optional[str] = None,
    ) -> Source:
        """Create a new source.

        Args:
            name: Display name.
            url: Feed URL.
            source_type: Source type.
            status: Initial status.
            site_id: Owning WordPress site, if any.

        Returns:
            The created source.

        Raises:
            DatabaseError: If database operation fails.
        """
        source = Source(
            id=uuid4().hex,
            name=name,
            url=url,
            type=source_type,
            status=status,
            site_id=site_id,
        )
        try:
            self.db.execute(
                """
                INSERT INTO sources (
                    id, name, type, url, status, site_id, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    source.id,
                    source.name,
                    source.type.value,
                    source.url,
                    source.status.value,
                    source.site_id,
                    to_db_datetime(source.created_at),
                    to_db_datetime(source.updated_at),
                ),
            )
            self.db.commit()
            logger.info("source_created", source_id=source.id, name=name)
            return source

        except Exception as e:
            self.db.rollback()
            logger.error("create_source_failed", name=name, error=str(e))
            raise DatabaseError(f"Failed to create source: {e}") from e

    def get(self, source_id: str) -> Optional[Source]:
        """Find a source by ID."""
        try:
            row = self.db.execute("SELECT * FROM sources WHERE id = ?", (source_id,)).fetchone()
            return self._row_to_source(row) if row else None
        except Exception as e:
            logger.error("get_source_failed", source_id=source_id, error=str(e))
            raise DatabaseError(f"Failed to get source: {e}") from e

    def list_all(self) -> List[Source]:
        """All sources, newest first."""
        try:
            rows = self.db.execute("SELECT * FROM sources ORDER BY created_at DESC").fetchall()
            return [self._row_to_source(row) for row in rows]
        except Exception as e:
            logger.error("list_sources_failed", error=str(e))
            raise DatabaseError(f"Failed to list sources: {e}") from e

    def get_pollable(self, limit: int) -> List[Source]:
        """Get active RSS sources with a URL, least recently fetched first.

        Sources never fetched sort before everything else.

        Args:
            limit: Maximum number of sources.

        Returns:
            Sources to poll.

        Raises:
            DatabaseError: If database operation fails.
        """
        try:
            rows = self.db.execute(
                """
                SELECT * FROM sources
                WHERE status = ? AND type = ? AND url IS NOT NULL AND url != ''
                ORDER BY last_fetch_at IS NOT NULL, last_fetch_at ASC
                LIMIT ?
                """,
                (SourceStatus.ACTIVE.value, SourceType.RSS.value, limit),
            ).fetchall()
            return [self._row_to_source(row) for row in rows]
        except Exception as e:
            logger.error("get_pollable_sources_failed", error=str(e))
            raise DatabaseError(f"Failed to get pollable sources: {e}") from e

    def record_fetch_success(self, source_id: str, fetched_at: Optional[datetime] = None) -> None:
        """Stamp a successful fetch and clear the previous error."""
        fetched_at = fetched_at or now_utc()
        try:
            self.db.execute(
                """
                UPDATE sources
                SET last_fetch_at = ?, last_fetch_status = ?,
                    last_error = NULL, last_error_at = NULL, updated_at = ?
                WHERE id = ?
                """,
                (
                    to_db_datetime(fetched_at),
                    FetchStatus.SUCCESS.value,
                    to_db_datetime(now_utc()),
                    source_id,
                ),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("record_fetch_success_failed", source_id=source_id, error=str(e))
            raise DatabaseError(f"Failed to update source: {e}") from e

    def record_fetch_failure(self, source_id: str, error: str) -> None:
        """Record a fetch error; the source keeps its status."""
        failed_at = to_db_datetime(now_utc())
        try:
            self.db.execute(
                """
                UPDATE sources
                SET last_fetch_status = ?, last_error = ?, last_error_at = ?, updated_at = ?
                WHERE id = ?
                """,
                (FetchStatus.ERROR.value, error, failed_at, failed_at, source_id),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("record_fetch_failure_failed", source_id=source_id, error=str(e))
            raise DatabaseError(f"Failed to update source: {e}") from e

    def set_status(self, source_id: str, status: SourceStatus) -> bool:
        """Change a source's status. Returns False if the source does not exist."""
        try:
            cursor = self.db.execute(
                "UPDATE sources SET status = ?, updated_at = ? WHERE id = ?",
                (SourceStatus(status).value, to_db_datetime(now_utc()), source_id),
            )
            self.db.commit()
            return cursor.rowcount > 0
        except Exception as e:
            self.db.rollback()
            logger.error("set_source_status_failed", source_id=source_id, error=str(e))
            raise DatabaseError(f"Failed to update source status: {e}") from e

    def count(self, active_only: bool = False) -> int:
        """Count sources."""
        query = "SELECT COUNT(*) FROM sources"
        params: tuple = ()
        if active_only:
            query += " WHERE status = ?"
            params = (SourceStatus.ACTIVE.value,)
        try:
            return self.db.execute(query, params).fetchone()[0]
        except Exception as e:
            raise DatabaseError(f"Failed to count sources: {e}") from e

    def fetch_summaries(self, since: datetime) -> List[Dict[str, Any]]:
        """Per-source polling summary with feed item counts.

        Args:
            since: Start of the "recent items" window.

        Returns:
            One dict per source.
        """
        try:
            rows = self.db.execute(
                """
                SELECT s.*,
                    COUNT(f.id) AS total_items,
                    COALESCE(SUM(f.processed), 0) AS processed_items,
                    COALESCE(SUM(CASE WHEN f.fetched_at >= ? THEN 1 ELSE 0 END), 0) AS recent_items
                FROM sources s
                LEFT JOIN feed_items f ON f.source_id = s.id
                GROUP BY s.id
                ORDER BY s.last_fetch_at IS NULL, s.last_fetch_at DESC
                """,
                (to_db_datetime(since),),
            ).fetchall()
        except Exception as e:
            logger.error("fetch_summaries_failed", error=str(e))
            raise DatabaseError(f"Failed to summarize sources: {e}") from e

        summaries = []
        for row in rows:
            source = self._row_to_source(row)
            summaries.append(
                {
                    "id": source.id,
                    "name": source.name,
                    "url": source.url,
                    "status": source.status.value,
                    "last_fetch_at": source.last_fetch_at,
                    "last_fetch_status": (
                        source.last_fetch_status.value if source.last_fetch_status else None
                    ),
                    "last_error": source.last_error,
                    "last_error_at": source.last_error_at,
                    "total_items": row["total_items"],
                    "processed_items": row["processed_items"],
                    "recent_items": row["recent_items"],
                }
            )
        return summaries

    def _row_to_source(self, row) -> Source:
        return Source(
            id=row["id"],
            name=row["name"],
            type=SourceType(row["type"]),
            url=row["url"],
            status=SourceStatus(row["status"]),
            site_id=row["site_id"],
            last_fetch_at=parse_db_datetime(row["last_fetch_at"]),
            last_fetch_status=(
                FetchStatus(row["last_fetch_status"]) if row["last_fetch_status"] else None
            ),
            last_error=row["last_error"],
            last_error_at=parse_db_datetime(row["last_error_at"]),
            created_at=parse_db_datetime(row["created_at"]),
            updated_at=parse_db_datetime(row["updated_at"]),
        )
