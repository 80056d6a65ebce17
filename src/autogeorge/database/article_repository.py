"""Article repository for database operations."""

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from autogeorge.core.article import Article
from autogeorge.core.enums import ArticleStatus
from autogeorge.core.image import ImagePrompt
from autogeorge.core.workflow import ensure_transition
from autogeorge.database.connection import DatabaseConnection
from autogeorge.utils.date_utils import now_utc, parse_db_datetime, to_db_datetime
from autogeorge.utils.exceptions import DatabaseError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

# Columns a status transition may set alongside the status itself
_TRANSITION_FIELDS = {
    "featured_media_url",
    "wordpress_post_id",
    "published_at",
    "last_error",
}


class ArticleRepository:
    """Repository for article database operations.

    Every status change is a compare-and-set on the current status, so two
    overlapping runs can never both advance the same article.
    """

    def __init__(self, db: DatabaseConnection):
        """Initialize repository.

        Args:
            db: Database connection instance.
        """
        self.db = db

    def create_from_feed_item(self, article: Article, feed_item_id: str, claim_token: str) -> Article:
        """Insert an article and mark its feed item consumed, atomically.

        The feed item must still be held under `claim_token` and unlinked;
        otherwise nothing is written.

        Args:
            article: Article to insert.
            feed_item_id: Feed item the article was generated from.
            claim_token: Claim held by the caller on the feed item.

        Returns:
            The stored article.

        Raises:
            DatabaseError: If the claim was lost or the write fails.
        """
        article = article.model_copy(update={"feed_item_id": feed_item_id})
        try:
            with self.db.transaction() as conn:
                self._insert(conn, article)
                cursor = conn.execute(
                    """
                    UPDATE feed_items
                    SET processed = 1, article_id = ?, claim_token = NULL, claimed_at = NULL
                    WHERE id = ? AND claim_token = ? AND article_id IS NULL
                    """,
                    (article.id, feed_item_id, claim_token),
                )
                if cursor.rowcount != 1:
                    raise DatabaseError(f"Claim on feed item {feed_item_id} was lost")
        except DatabaseError:
            logger.warning("feed_item_claim_lost", feed_item_id=feed_item_id)
            raise
        except Exception as e:
            logger.error("create_article_failed", feed_item_id=feed_item_id, error=str(e))
            raise DatabaseError(f"Failed to create article: {e}") from e

        logger.info(
            "article_created",
            article_id=article.id,
            feed_item_id=feed_item_id,
            status=article.status.value,
        )
        return article

    def create(self, article: Article) -> Article:
        """Insert a standalone article (manual creation)."""
        try:
            with self.db.transaction() as conn:
                self._insert(conn, article)
            return article
        except Exception as e:
            logger.error("create_article_failed", article_id=article.id, error=str(e))
            raise DatabaseError(f"Failed to create article: {e}") from e

    def get(self, article_id: str) -> Optional[Article]:
        """Find an article by ID."""
        try:
            row = self.db.execute("SELECT * FROM articles WHERE id = ?", (article_id,)).fetchone()
            return self._row_to_article(row) if row else None
        except Exception as e:
            raise DatabaseError(f"Failed to get article: {e}") from e

    def get_by_status(
        self,
        statuses: Iterable[ArticleStatus],
        limit: int,
        stale_before: datetime,
        auto_generated_only: bool = False,
    ) -> List[Article]:
        """Get articles in any of `statuses`, oldest first.

        Articles leased by a run that is still going are skipped.

        Args:
            statuses: Precondition statuses.
            limit: Maximum number of articles.
            stale_before: Leases older than this are considered abandoned.
            auto_generated_only: Only articles with a generation config.

        Returns:
            Matching articles.

        Raises:
            DatabaseError: If database operation fails.
        """
        status_values = [ArticleStatus(s).value for s in statuses]
        placeholders = ", ".join("?" for _ in status_values)
        query = f"""
            SELECT * FROM articles
            WHERE status IN ({placeholders})
              AND (leased_at IS NULL OR leased_at < ?)
        """
        if auto_generated_only:
            query += " AND generation_config IS NOT NULL"
        query += " ORDER BY created_at ASC LIMIT ?"

        try:
            rows = self.db.execute(
                query, tuple(status_values) + (to_db_datetime(stale_before), limit)
            ).fetchall()
            return [self._row_to_article(row) for row in rows]
        except Exception as e:
            logger.error("get_articles_by_status_failed", statuses=status_values, error=str(e))
            raise DatabaseError(f"Failed to get articles: {e}") from e

    def lease(
        self,
        article_id: str,
        expected_status: ArticleStatus,
        token: str,
        stale_before: datetime,
    ) -> bool:
        """Take a processing lease on an article still in `expected_status`.

        Returns:
            True if the lease was acquired.
        """
        try:
            cursor = self.db.execute(
                """
                UPDATE articles SET lease_token = ?, leased_at = ?
                WHERE id = ? AND status = ?
                  AND (leased_at IS NULL OR leased_at < ?)
                """,
                (
                    token,
                    to_db_datetime(now_utc()),
                    article_id,
                    ArticleStatus(expected_status).value,
                    to_db_datetime(stale_before),
                ),
            )
            self.db.commit()
            return cursor.rowcount == 1
        except Exception as e:
            self.db.rollback()
            logger.error("lease_article_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to lease article: {e}") from e

    def transition(
        self,
        article_id: str,
        from_status: ArticleStatus,
        to_status: ArticleStatus,
        **fields: Any,
    ) -> bool:
        """Move an article to a new status if it is still in `from_status`.

        Also clears any lease. Extra keyword arguments set the matching
        columns (featured_media_url, wordpress_post_id, published_at,
        last_error).

        Returns:
            True if the row was updated, False if its status had changed.

        Raises:
            InvalidTransitionError: If the workflow forbids the move.
            DatabaseError: If database operation fails.
        """
        ensure_transition(from_status, to_status)
        unknown = set(fields) - _TRANSITION_FIELDS
        if unknown:
            raise ValueError(f"Unsupported article fields: {sorted(unknown)}")

        assignments = ["status = ?", "lease_token = NULL", "leased_at = NULL", "updated_at = ?"]
        params: List[Any] = [ArticleStatus(to_status).value, to_db_datetime(now_utc())]
        for column, value in fields.items():
            assignments.append(f"{column} = ?")
            params.append(to_db_datetime(value) if isinstance(value, datetime) else value)
        params.extend([article_id, ArticleStatus(from_status).value])

        try:
            cursor = self.db.execute(
                f"UPDATE articles SET {', '.join(assignments)} WHERE id = ? AND status = ?",
                tuple(params),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("article_transition_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to update article status: {e}") from e

        updated = cursor.rowcount == 1
        if updated:
            logger.info(
                "article_status_changed",
                article_id=article_id,
                from_status=ArticleStatus(from_status).value,
                to_status=ArticleStatus(to_status).value,
            )
        else:
            logger.warning("article_status_conflict", article_id=article_id)
        return updated

    def release(self, article_id: str, token: str, error: Optional[str] = None) -> None:
        """Release a lease without changing status.

        With `error`, the failure is recorded and the retry counter bumped.
        """
        try:
            if error is None:
                self.db.execute(
                    """
                    UPDATE articles SET lease_token = NULL, leased_at = NULL
                    WHERE id = ? AND lease_token = ?
                    """,
                    (article_id, token),
                )
            else:
                self.db.execute(
                    """
                    UPDATE articles
                    SET lease_token = NULL, leased_at = NULL, last_error = ?,
                        retry_count = retry_count + 1, updated_at = ?
                    WHERE id = ? AND lease_token = ?
                    """,
                    (error, to_db_datetime(now_utc()), article_id, token),
                )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("release_article_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to release article: {e}") from e

    def count(self, status: Optional[ArticleStatus] = None) -> int:
        """Count articles, optionally in one status."""
        try:
            if status is None:
                return self.db.execute("SELECT COUNT(*) FROM articles").fetchone()[0]
            return self.db.execute(
                "SELECT COUNT(*) FROM articles WHERE status = ?",
                (ArticleStatus(status).value,),
            ).fetchone()[0]
        except Exception as e:
            raise DatabaseError(f"Failed to count articles: {e}") from e

    def count_by_status(self) -> Dict[str, int]:
        """Article counts keyed by status value."""
        try:
            rows = self.db.execute(
                "SELECT status, COUNT(*) AS n FROM articles GROUP BY status"
            ).fetchall()
            return {row["status"]: row["n"] for row in rows}
        except Exception as e:
            raise DatabaseError(f"Failed to count articles: {e}") from e

    def _insert(self, conn, article: Article) -> None:
        conn.execute(
            """
            INSERT INTO articles (
                id, title, content, status, source_id, feed_item_id, site_id,
                featured_media_url, meta_description, seo_tags, generation_config,
                wordpress_post_id, published_at, last_error, retry_count,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                article.id,
                article.title,
                article.content,
                article.status.value,
                article.source_id,
                article.feed_item_id,
                article.site_id,
                article.featured_media_url,
                article.meta_description,
                json.dumps(article.seo_tags),
                json.dumps(article.generation_config) if article.generation_config is not None else None,
                article.wordpress_post_id,
                to_db_datetime(article.published_at),
                article.last_error,
                article.retry_count,
                to_db_datetime(article.created_at),
                to_db_datetime(article.updated_at),
            ),
        )

    def _row_to_article(self, row) -> Article:
        return Article(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            status=ArticleStatus(row["status"]),
            source_id=row["source_id"],
            feed_item_id=row["feed_item_id"],
            site_id=row["site_id"],
            featured_media_url=row["featured_media_url"],
            meta_description=row["meta_description"],
            seo_tags=json.loads(row["seo_tags"]) if row["seo_tags"] else [],
            generation_config=(
                json.loads(row["generation_config"]) if row["generation_config"] else None
            ),
            wordpress_post_id=row["wordpress_post_id"],
            published_at=parse_db_datetime(row["published_at"]),
            last_error=row["last_error"],
            retry_count=row["retry_count"],
            created_at=parse_db_datetime(row["created_at"]),
            updated_at=parse_db_datetime(row["updated_at"]),
        )


class ImagePromptRepository:
    """Cache of image generation prompts, one per article."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def get(self, article_id: str) -> Optional[ImagePrompt]:
        try:
            row = self.db.execute(
                "SELECT * FROM image_prompts WHERE article_id = ?", (article_id,)
            ).fetchone()
        except Exception as e:
            raise DatabaseError(f"Failed to get image prompt: {e}") from e
        if not row:
            return None
        return ImagePrompt(
            article_id=row["article_id"],
            prompt=row["prompt"],
            model=row["model"],
            created_at=parse_db_datetime(row["created_at"]),
        )

    def save(self, prompt: ImagePrompt) -> None:
        try:
            self.db.execute(
                """
                INSERT INTO image_prompts (article_id, prompt, model, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(article_id) DO UPDATE SET
                    prompt = excluded.prompt, model = excluded.model,
                    created_at = excluded.created_at
                """,
                (prompt.article_id, prompt.prompt, prompt.model, to_db_datetime(prompt.created_at)),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("save_image_prompt_failed", article_id=prompt.article_id, error=str(e))
            raise DatabaseError(f"Failed to save image prompt: {e}") from e

    def delete(self, article_id: str) -> bool:
        """Drop the cached prompt so the next image run builds a new one."""
        try:
            cursor = self.db.execute("DELETE FROM image_prompts WHERE article_id = ?", (article_id,))
            self.db.commit()
            return cursor.rowcount == 1
        except Exception as e:
            self.db.rollback()
            logger.error("delete_image_prompt_failed", article_id=article_id, error=str(e))
            raise DatabaseError(f"Failed to delete image prompt: {e}") from e
