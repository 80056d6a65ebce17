"""Database connection management."""

import atexit
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

import structlog

logger = structlog.get_logger(__name__)

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Global registry of connections for cleanup
_active_connections: list["DatabaseConnection"] = []

# Global write lock to serialize all database writes across connections
_write_lock = threading.RLock()

_WRITE_PREFIXES = ("INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER", "REPLACE")


def _cleanup_all_connections() -> None:
    """Close connections still open at interpreter exit."""
    for conn in _active_connections[:]:
        try:
            conn.close()
        except sqlite3.Error as e:
            logger.warning("database_close_on_exit_failed", error=str(e))


atexit.register(_cleanup_all_connections)


class DatabaseConnection:
    """SQLite database connection manager."""

    def __init__(self, db_path: Union[Path, str]) -> None:
        """Initialize database connection.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self._connection: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """Get or create database connection.

        A database file that does not exist yet gets the schema applied.

        Returns:
            SQLite connection object
        """
        if self._connection is None:
            needs_init = not self.db_path.exists()
            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            # Stages run inside the API server's event loop and its threadpool
            self._connection = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False,
            )
            self._connection.execute("PRAGMA foreign_keys = ON")
            self._connection.execute("PRAGMA journal_mode = WAL")
            self._connection.execute("PRAGMA synchronous = NORMAL")
            self._connection.execute("PRAGMA busy_timeout = 30000")
            self._connection.row_factory = sqlite3.Row

            if needs_init:
                self._initialize_schema()

            _active_connections.append(self)
            logger.info("database_connected", path=str(self.db_path))

        return self._connection

    def _initialize_schema(self) -> None:
        if self._connection is None:
            return
        with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
            self._connection.executescript(f.read())
        self._connection.commit()
        logger.info("database_schema_initialized")

    def close(self) -> None:
        """Close database connection with a WAL checkpoint."""
        if self._connection:
            try:
                self._connection.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            except sqlite3.Error as e:
                logger.debug("wal_checkpoint_failed", error=str(e))

            self._connection.close()
            self._connection = None

            if self in _active_connections:
                _active_connections.remove(self)

            logger.info("database_closed")

    def execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a database query with thread safety.

        Args:
            query: SQL query string
            params: Query parameters

        Returns:
            Cursor object
        """
        conn = self.connect()
        if query.lstrip().upper().startswith(_WRITE_PREFIXES):
            with _write_lock:
                return conn.execute(query, params)
        return conn.execute(query, params)

    def commit(self) -> None:
        """Commit current transaction (thread-safe)."""
        if self._connection:
            with _write_lock:
                self._connection.commit()

    def rollback(self) -> None:
        """Rollback current transaction."""
        if self._connection:
            self._connection.rollback()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Run several statements as one unit.

        Holds the write lock for the whole block so no other writer can
        interleave. Commits on success, rolls back and re-raises on error.
        """
        conn = self.connect()
        with _write_lock:
            try:
                yield conn
                conn.commit()
            except BaseException:
                conn.rollback()
                raise


def init_database(db_path: Union[Path, str]) -> DatabaseConnection:
    """Create (or upgrade in place) the database schema.

    Every statement in schema.sql is idempotent, so this is safe to run
    against an existing database.

    Args:
        db_path: Path to SQLite database file

    Returns:
        DatabaseConnection object
    """
    db = DatabaseConnection(db_path)
    conn = db.connect()
    with open(SCHEMA_PATH, "r", encoding="utf-8") as f:
        conn.executescript(f.read())
    conn.commit()

    logger.info("database_initialized", path=str(db.db_path))
    return db
