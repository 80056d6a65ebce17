"""WordPress site repository."""

import json
from typing import Any, List, Optional
from uuid import uuid4

from autogeorge.core.site import GenerationSettings, WordPressSite
from autogeorge.database.connection import DatabaseConnection
from autogeorge.utils.date_utils import now_utc, parse_db_datetime, to_db_datetime
from autogeorge.utils.exceptions import DatabaseError
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

_UPDATABLE = {
    "name",
    "url",
    "username",
    "password",
    "default_category",
    "default_status",
    "default_author",
    "enable_auto_generation",
    "enable_featured_image",
    "enable_auto_publish",
    "is_active",
}


class SiteRepository:
    """Repository for WordPress sites and their generation settings."""

    def __init__(self, db: DatabaseConnection):
        """Initialize repository.

        Args:
            db: Database connection instance.
        """
        self.db = db

    def create(self, **fields: Any) -> WordPressSite:
        """Create a site from keyword fields (see WordPressSite).

        Raises:
            DatabaseError: If database operation fails.
        """
        site = WordPressSite(id=uuid4().hex, **fields)
        try:
            self.db.execute(
                """
                INSERT INTO wordpress_sites (
                    id, name, url, username, password, default_category,
                    default_status, default_author, enable_auto_generation,
                    enable_featured_image, enable_auto_publish, is_active,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    site.id,
                    site.name,
                    site.url,
                    site.username,
                    site.password,
                    site.default_category,
                    site.default_status,
                    site.default_author,
                    int(site.enable_auto_generation),
                    int(site.enable_featured_image),
                    int(site.enable_auto_publish),
                    int(site.is_active),
                    to_db_datetime(site.created_at),
                    to_db_datetime(site.updated_at),
                ),
            )
            self.db.commit()
            logger.info("site_created", site_id=site.id, name=site.name)
            return site

        except Exception as e:
            self.db.rollback()
            logger.error("create_site_failed", error=str(e))
            raise DatabaseError(f"Failed to create site: {e}") from e

    def get(self, site_id: str) -> Optional[WordPressSite]:
        """Find a site by ID."""
        try:
            row = self.db.execute(
                "SELECT * FROM wordpress_sites WHERE id = ?", (site_id,)
            ).fetchone()
            return self._row_to_site(row) if row else None
        except Exception as e:
            raise DatabaseError(f"Failed to get site: {e}") from e

    def list_all(self) -> List[WordPressSite]:
        """All sites, newest first."""
        try:
            rows = self.db.execute(
                "SELECT * FROM wordpress_sites ORDER BY created_at DESC"
            ).fetchall()
            return [self._row_to_site(row) for row in rows]
        except Exception as e:
            raise DatabaseError(f"Failed to list sites: {e}") from e

    def get_active(self) -> Optional[WordPressSite]:
        """The site driving automation: the oldest active one."""
        try:
            row = self.db.execute(
                """
                SELECT * FROM wordpress_sites WHERE is_active = 1
                ORDER BY created_at ASC LIMIT 1
                """
            ).fetchone()
            return self._row_to_site(row) if row else None
        except Exception as e:
            logger.error("get_active_site_failed", error=str(e))
            raise DatabaseError(f"Failed to get active site: {e}") from e

    def update(self, site_id: str, **fields: Any) -> Optional[WordPressSite]:
        """Update editable site fields.

        Returns:
            The updated site, or None if it does not exist.

        Raises:
            ValueError: If a field is not editable.
            DatabaseError: If database operation fails.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported site fields: {sorted(unknown)}")
        if not fields:
            return self.get(site_id)

        assignments = [f"{column} = ?" for column in fields]
        params = [int(v) if isinstance(v, bool) else v for v in fields.values()]
        assignments.append("updated_at = ?")
        params.append(to_db_datetime(now_utc()))
        params.append(site_id)
        try:
            cursor = self.db.execute(
                f"UPDATE wordpress_sites SET {', '.join(assignments)} WHERE id = ?",
                tuple(params),
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("update_site_failed", site_id=site_id, error=str(e))
            raise DatabaseError(f"Failed to update site: {e}") from e

        if cursor.rowcount == 0:
            return None
        return self.get(site_id)

    def record_publish(self, site_id: str) -> None:
        """Stamp the last successful publication."""
        now = to_db_datetime(now_utc())
        self._write(
            "UPDATE wordpress_sites SET last_publish_at = ?, last_error = NULL, updated_at = ? WHERE id = ?",
            (now, now, site_id),
        )

    def record_error(self, site_id: str, error: str) -> None:
        """Remember the last publishing error on the site."""
        self._write(
            "UPDATE wordpress_sites SET last_error = ?, updated_at = ? WHERE id = ?",
            (error, to_db_datetime(now_utc()), site_id),
        )

    def get_generation_settings(self, site_id: Optional[str]) -> GenerationSettings:
        """Generation settings of a site, defaults when none are stored."""
        if site_id is None:
            return GenerationSettings()
        try:
            row = self.db.execute(
                "SELECT settings_json FROM generation_settings WHERE site_id = ?", (site_id,)
            ).fetchone()
        except Exception as e:
            raise DatabaseError(f"Failed to get generation settings: {e}") from e
        if not row:
            return GenerationSettings()
        return GenerationSettings.model_validate(json.loads(row["settings_json"]))

    def save_generation_settings(self, site_id: str, settings: GenerationSettings) -> None:
        """Store generation settings for a site."""
        self._write(
            """
            INSERT INTO generation_settings (site_id, settings_json, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(site_id) DO UPDATE SET
                settings_json = excluded.settings_json, updated_at = excluded.updated_at
            """,
            (site_id, settings.model_dump_json(), to_db_datetime(now_utc())),
        )

    def _write(self, query: str, params: tuple) -> None:
        try:
            self.db.execute(query, params)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error("site_write_failed", error=str(e))
            raise DatabaseError(f"Failed to update site: {e}") from e

    def _row_to_site(self, row) -> WordPressSite:
        return WordPressSite(
            id=row["id"],
            name=row["name"],
            url=row["url"],
            username=row["username"],
            password=row["password"],
            default_category=row["default_category"],
            default_status=row["default_status"],
            default_author=row["default_author"],
            enable_auto_generation=bool(row["enable_auto_generation"]),
            enable_featured_image=bool(row["enable_featured_image"]),
            enable_auto_publish=bool(row["enable_auto_publish"]),
            is_active=bool(row["is_active"]),
            last_publish_at=parse_db_datetime(row["last_publish_at"]),
            last_error=row["last_error"],
            created_at=parse_db_datetime(row["created_at"]),
            updated_at=parse_db_datetime(row["updated_at"]),
        )
