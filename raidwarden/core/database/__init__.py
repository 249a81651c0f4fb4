"""
Raid Warden - Database Package
==============================

SQLite-backed snapshot store.
"""

from raidwarden.core.database.manager import (
    DatabaseManager,
    get_db,
    DATA_DIR,
    DB_PATH,
)
from raidwarden.core.database.store import guild_backup_key, role_backup_key

__all__ = [
    "DatabaseManager",
    "get_db",
    "DATA_DIR",
    "DB_PATH",
    "guild_backup_key",
    "role_backup_key",
]
