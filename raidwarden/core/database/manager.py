"""
Raid Warden - Database Manager
==============================

SQLite database manager backing the snapshot store.

DESIGN:
    Singleton so every service shares one connection. WAL mode keeps the
    periodic snapshot sweep from blocking reads issued by raid responses.
    All statements run under one threading lock.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Optional, List, Tuple, Union

from raidwarden.core.logger import logger
from raidwarden.core.database.schema import SchemaMixin
from raidwarden.core.database.store import SnapshotStoreMixin


# =============================================================================
# Constants
# =============================================================================

DATA_DIR: Path = Path("data")
DB_PATH: Path = DATA_DIR / "warden.db"

DB_CONNECTION_TIMEOUT = 30.0
SQLITE_BUSY_TIMEOUT = 5000


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager(
    SchemaMixin,
    SnapshotStoreMixin,
):
    """
    Thread-safe SQLite manager.

    The first construction fixes the database path; later calls return
    the same instance.
    """

    _instance: Optional["DatabaseManager"] = None
    _lock: threading.Lock = threading.Lock()

    def __new__(cls, path: Optional[Union[str, Path]] = None) -> "DatabaseManager":
        """Singleton pattern - only one instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self, path: Optional[Union[str, Path]] = None) -> None:
        if self._initialized:
            return

        self.path: Path = Path(path) if path else DB_PATH
        self._db_lock: threading.Lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._connect()
        self._init_tables()
        self._initialized = True

        logger.tree("Database Manager Initialized", [
            ("Path", str(self.path)),
            ("WAL Mode", "Enabled"),
        ], emoji="🗄️")

    # =========================================================================
    # Connection Management
    # =========================================================================

    def _connect(self) -> None:
        """Establish database connection with WAL mode."""
        try:
            self._conn = sqlite3.connect(
                str(self.path),
                check_same_thread=False,
                timeout=DB_CONNECTION_TIMEOUT,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}")
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [("Error", str(e))])
            raise

    def _ensure_connection(self) -> sqlite3.Connection:
        """Ensure connection is valid, reconnect if needed."""
        if self._conn is None:
            self._connect()
        try:
            self._conn.execute("SELECT 1")
        except sqlite3.Error:
            self._connect()
        return self._conn

    def execute(
        self,
        query: str,
        params: Tuple = (),
        commit: bool = True
    ) -> sqlite3.Cursor:
        """Execute a query with thread safety."""
        with self._db_lock:
            conn = self._ensure_connection()
            cursor = conn.cursor()
            cursor.execute(query, params)
            if commit:
                conn.commit()
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        """Execute query and fetch one result."""
        cursor = self.execute(query, params, commit=False)
        return cursor.fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        """Execute query and fetch all results."""
        cursor = self.execute(query, params, commit=False)
        return cursor.fetchall()

    def close(self) -> None:
        """Close database connection."""
        with self._db_lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("Database Connection Closed")


# =============================================================================
# Global Instance
# =============================================================================

def get_db(path: Optional[Union[str, Path]] = None) -> DatabaseManager:
    """Get the global database manager instance."""
    return DatabaseManager(path)


__all__ = ["DatabaseManager", "get_db", "DB_PATH", "DATA_DIR"]
