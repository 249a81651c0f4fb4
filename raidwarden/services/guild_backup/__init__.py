"""
Raid Warden - Guild Backup Package
==================================

Channel snapshots, reconciliation and the periodic snapshot sweep.
"""

from raidwarden.services.guild_backup.service import GuildBackupService, capture_channel, channel_kind
from raidwarden.services.guild_backup.scheduler import SnapshotScheduler

__all__ = [
    "GuildBackupService",
    "SnapshotScheduler",
    "capture_channel",
    "channel_kind",
]
