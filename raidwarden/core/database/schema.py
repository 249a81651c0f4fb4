"""
Raid Warden - Database Schema
=============================

Table definitions.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from raidwarden.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Initialize all database tables.

        Tables are created if missing so restarts are safe.
        """
        conn = self._ensure_connection()
        cursor = conn.cursor()

        # -----------------------------------------------------------------
        # Snapshot Store
        # Key -> JSON blob, last write wins. Holds guild channel snapshots
        # (backup_<guild>) and member role backups (roles_backup_<guild>_<member>)
        # -----------------------------------------------------------------
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS snapshot_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        conn.commit()


__all__ = ["SchemaMixin"]
