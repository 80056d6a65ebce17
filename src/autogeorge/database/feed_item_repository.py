"""Feed item repository for database operations."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from autogeorge.core.enums import SourceStatus
from autogeorge.core.feed import FeedEntry, FeedItem
from autogeorge.database.connection import DatabaseConnection
from autogeorge.utils.date_utils import now_utc, parse_db_datetime, to_db_datetime
from autogeorge.utils.exceptions import DatabaseError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)


class FeedItemRepository:
    """Repository for fetched feed items.

    A feed item is consumed at most once: generation first claims it with a
    conditional UPDATE, then links it to the new article in the same
    transaction that creates the article (see ArticleRepository).
    """

    def __init__(self, db: DatabaseConnection):
        """Initialize repository.

        Args:
            db: Database connection instance.
        """
        self.db = db

    def exists(self, source_id: str, entry: FeedEntry) -> bool:
        """Check whether an entry was already stored.

        Matches on the GUID, or on the same title within the same source.
        """
        row = self.db.execute(
            """
            SELECT 1 FROM feed_items
            WHERE guid = ? OR (source_id = ? AND title = ?)
            LIMIT 1
            """,
            (entry.guid, source_id, entry.title),
        ).fetchone()
        return row is not None

    def insert_if_new(self, source_id: str, entry: FeedEntry) -> Optional[FeedItem]:
        """Store a feed entry unless it is a duplicate.

        Args:
            source_id: Source the entry was fetched from.
            entry: Parsed feed entry.

        Returns:
            The new feed item, or None if it was a duplicate.

        Raises:
            DatabaseError: If database operation fails.
        """
        try:
            if self.exists(source_id, entry):
                logger.debug("feed_item_duplicate", source_id=source_id, guid=entry.guid)
                return None

            item = FeedItem(
                id=uuid4().hex,
                source_id=source_id,
                guid=entry.guid,
                title=entry.title,
                content=entry.content,
                url=entry.link,
                published_at=entry.published_at,
            )
            # UNIQUE(source_id, guid) backs up the check above against a concurrent poll
            cursor = self.db.execute(
                """
                INSERT OR IGNORE INTO feed_items (
                    id, source_id, guid, title, content, url,
                    published_at, fetched_at, processed
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0)
                """,
                (
                    item.id,
                    item.source_id,
                    item.guid,
                    item.title,
                    item.content,
                    item.url,
                    to_db_datetime(item.published_at),
                    to_db_datetime(item.fetched_at),
                ),
            )
            self.db.commit()
            if cursor.rowcount == 0:
                return None
            return item

        except Exception as e:
            self.db.rollback()
            logger.error("insert_feed_item_failed", source_id=source_id, error=str(e))
            raise DatabaseError(f"Failed to insert feed item: {e}") from e

    def get(self, item_id: str) -> Optional[FeedItem]:
        """Find a feed item by ID."""
        try:
            row = self.db.execute("SELECT * FROM feed_items WHERE id = ?", (item_id,)).fetchone()
            return self._row_to_item(row) if row else None
        except Exception as e:
            raise DatabaseError(f"Failed to get feed item: {e}") from e

    def get_pending(
        self,
        limit: int,
        stale_before: datetime,
        active_sources_only: bool = False,
    ) -> List[FeedItem]:
        """Get unconsumed feed items, oldest fetch first.

        Items claimed by a run that has not finished yet are excluded; a claim
        older than `stale_before` is considered abandoned.

        Args:
            limit: Maximum number of items.
            stale_before: Claims older than this are ignored.
            active_sources_only: Leave out items whose source is not active,
                before the limit is applied.

        Returns:
            Pending feed items.

        Raises:
            DatabaseError: If database operation fails.
        """
        query = """
            SELECT f.* FROM feed_items f
            JOIN sources s ON s.id = f.source_id
            WHERE f.processed = 0 AND f.article_id IS NULL
              AND (f.claimed_at IS NULL OR f.claimed_at < ?)
        """
        params: List[Any] = [to_db_datetime(stale_before)]
        if active_sources_only:
            query += " AND s.status = ?"
            params.append(SourceStatus.ACTIVE.value)
        query += " ORDER BY f.fetched_at ASC LIMIT ?"
        params.append(limit)
        try:
            rows = self.db.execute(query, tuple(params)).fetchall()
            return [self._row_to_item(row) for row in rows]
        except Exception as e:
            logger.error("get_pending_feed_items_failed", error=str(e))
            raise DatabaseError(f"Failed to get pending feed items: {e}") from e

    def count_pending_inactive(self) -> int:
        """Count unconsumed feed items whose source is not active."""
        try:
            return self.db.execute(
                """
                SELECT COUNT(*) FROM feed_items f
                JOIN sources s ON s.id = f.source_id
                WHERE f.processed = 0 AND f.article_id IS NULL AND s.status != ?
                """,
                (SourceStatus.ACTIVE.value,),
            ).fetchone()[0]
        except Exception as e:
            raise DatabaseError(f"Failed to count pending feed items: {e}") from e

    def claim(self, item_id: str, token: str, stale_before: datetime) -> bool:
        """Atomically claim a feed item for generation.

        Args:
            item_id: Feed item ID.
            token: Claim token of the caller.
            stale_before: Existing claims older than this may be taken over.

        Returns:
            True if this caller now holds the claim.
        """
        try:
            cursor = self.db.execute(
                """
                UPDATE feed_items
                SET claim_token = ?, claimed_at = ?
                WHERE id = ? AND processed = 0 AND article_id IS NULL
                  AND (claimed_at IS NULL OR claimed_at < ?)
                """,
                (token, to_db_datetime(now_utc()), item_id, to_db_datetime(stale_before)),
            )
            self.db.commit()
            return cursor.rowcount == 1
        except Exception as e:
            self.db.rollback()
            logger.error("claim_feed_item_failed", item_id=item_id, error=str(e))
            raise DatabaseError(f"Failed to claim feed item: {e}") from e

    def release_claim(self, item_id: str, token: str) -> None:
        """Drop a claim so the item is retried by the next run."""
        try:
            self.db.execute(
                """
                UPDATE feed_items SET claim_token = NULL, claimed_at = NULL
                WHERE id = ? AND claim_token = ?
                """,
                (item_id, token),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("release_feed_item_claim_failed", item_id=item_id, error=str(e))
            raise DatabaseError(f"Failed to release feed item claim: {e}") from e

    def count(self) -> int:
        """Count all feed items."""
        try:
            return self.db.execute("SELECT COUNT(*) FROM feed_items").fetchone()[0]
        except Exception as e:
            raise DatabaseError(f"Failed to count feed items: {e}") from e

    def list_for_monitoring(
        self,
        status: Optional[str] = None,
        source_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """List feed items with their source and generated article.

        Args:
            status: "processed", "pending", or an article status to filter on.
            source_id: Only items from this source.
            limit: Page size.
            offset: Page offset.

        Returns:
            Dict with "records", "total" and "stats".
        """
        where, params = self._monitor_filters(status, source_id)
        try:
            total = self.db.execute(
                f"""
                SELECT COUNT(*) FROM feed_items f
                LEFT JOIN articles a ON a.id = f.article_id
                {where}
                """,
                tuple(params),
            ).fetchone()[0]

            rows = self.db.execute(
                f"""
                SELECT f.*, s.name AS source_name, a.title AS article_title,
                       a.status AS article_status, a.created_at AS article_created_at
                FROM feed_items f
                JOIN sources s ON s.id = f.source_id
                LEFT JOIN articles a ON a.id = f.article_id
                {where}
                ORDER BY f.fetched_at DESC
                LIMIT ? OFFSET ?
                """,
                tuple(params) + (limit, offset),
            ).fetchall()

            stats_row = self.db.execute(
                """
                SELECT COUNT(*) AS total,
                       COALESCE(SUM(processed), 0) AS processed,
                       COALESCE(SUM(CASE WHEN processed = 0 THEN 1 ELSE 0 END), 0) AS pending,
                       COALESCE(SUM(CASE WHEN article_id IS NOT NULL THEN 1 ELSE 0 END), 0)
                           AS with_article
                FROM feed_items
                """
            ).fetchone()
        except Exception as e:
            logger.error("list_feed_items_for_monitoring_failed", error=str(e))
            raise DatabaseError(f"Failed to list feed items: {e}") from e

        records = []
        for row in rows:
            item = self._row_to_item(row)
            record = item.model_dump(mode="json", exclude={"claim_token"})
            record["source_name"] = row["source_name"]
            record["article"] = (
                {
                    "id": item.article_id,
                    "title": row["article_title"],
                    "status": row["article_status"],
                    "created_at": row["article_created_at"],
                }
                if item.article_id
                else None
            )
            records.append(record)

        return {
            "records": records,
            "total": total,
            "stats": {
                "total": stats_row["total"],
                "processed": stats_row["processed"],
                "pending": stats_row["pending"],
                "with_article": stats_row["with_article"],
            },
        }

    def delete_older_than(self, cutoff: datetime, status: Optional[str] = None) -> int:
        """Delete consumed (or filtered) feed items fetched before `cutoff`.

        Unprocessed items are never removed unless `status="pending"` is
        asked for explicitly.

        Returns:
            Number of deleted rows.
        """
        params: List[Any] = [to_db_datetime(cutoff)]
        query = "DELETE FROM feed_items WHERE fetched_at < ?"
        if status == "pending":
            query += " AND processed = 0"
        else:
            query += " AND processed = 1"
        try:
            cursor = self.db.execute(query, tuple(params))
            self.db.commit()
            logger.info("feed_items_deleted", count=cursor.rowcount, status=status)
            return cursor.rowcount
        except Exception as e:
            self.db.rollback()
            logger.error("delete_feed_items_failed", error=str(e))
            raise DatabaseError(f"Failed to delete feed items: {e}") from e

    @staticmethod
    def _monitor_filters(status: Optional[str], source_id: Optional[str]):
        clauses: List[str] = []
        params: List[Any] = []
        if status == "processed":
            clauses.append("f.processed = 1")
        elif status == "pending":
            clauses.append("f.processed = 0")
        elif status:
            clauses.append("a.status = ?")
            params.append(status)
        if source_id:
            clauses.append("f.source_id = ?")
            params.append(source_id)
        where = ("WHERE " + " AND ".join(clauses)) if clauses else ""
        return where, params

    def _row_to_item(self, row) -> FeedItem:
        return FeedItem(
            id=row["id"],
            source_id=row["source_id"],
            guid=row["guid"],
            title=row["title"],
            content=row["content"],
            url=row["url"],
            published_at=parse_db_datetime(row["published_at"]),
            fetched_at=parse_db_datetime(row["fetched_at"]),
            processed=bool(row["processed"]),
            article_id=row["article_id"],
            claim_token=row["claim_token"],
            claimed_at=parse_db_datetime(row["claimed_at"]),
        )
