"""
Raid Warden - Snapshot Store Mixin
==================================

Durable key -> JSON value store used for guild channel snapshots and
member role backups.

DESIGN:
    Each key is independent and every write replaces the previous value.
    A missing key reads as None. A row whose JSON no longer parses is
    logged and also reads as None, so a corrupted blob never breaks a
    restore path with an exception.
"""

import json
import time
from typing import TYPE_CHECKING, Any, Optional

from raidwarden.core.logger import logger
from raidwarden.core.constants import GUILD_BACKUP_PREFIX, ROLE_BACKUP_PREFIX

if TYPE_CHECKING:
    from raidwarden.core.database.manager import DatabaseManager


# =============================================================================
# Key Builders
# =============================================================================

def guild_backup_key(guild_id: int) -> str:
    """Key of the latest channel snapshot for a guild."""
    return f"{GUILD_BACKUP_PREFIX}{guild_id}"


def role_backup_key(guild_id: int, member_id: int) -> str:
    """Key of a member's pre-quarantine role backup."""
    return f"{ROLE_BACKUP_PREFIX}{guild_id}_{member_id}"


# =============================================================================
# Store Mixin
# =============================================================================

class SnapshotStoreMixin:
    """Mixin for snapshot store operations."""

    def put(self: "DatabaseManager", key: str, value: Any) -> None:
        """
        Persist a JSON-serializable value under key, replacing any previous value.

        Raises:
            sqlite3.Error: If the write fails.
            TypeError: If value is not JSON-serializable.
        """
        self.execute(
            "INSERT OR REPLACE INTO snapshot_store (key, value, updated_at) VALUES (?, ?, ?)",
            (key, json.dumps(value), time.time())
        )

    def get(self: "DatabaseManager", key: str) -> Optional[Any]:
        """
        Read the value stored under key.

        Returns:
            Decoded value, or None when the key is absent or unreadable.
        """
        row = self.fetchone("SELECT value FROM snapshot_store WHERE key = ?", (key,))
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except (json.JSONDecodeError, ValueError):
            logger.warning("Corrupted Store Entry", [
                ("Key", key),
                ("Value", row["value"][:50]),
            ])
            return None


__all__ = [
    "SnapshotStoreMixin",
    "guild_backup_key",
    "role_backup_key",
]
