"""
Raid Warden - Guild Backup Service
==================================

Channel topology snapshots and reconciliation.

DESIGN:
    snapshot() records every channel of a guild (name, kind, parent,
    position, permission overwrites) and overwrites the guild's previous
    snapshot. reconcile() recreates channels that existed at snapshot
    time but are gone now, matched on (name, kind).

    Recreation is serial with a pause between attempts so a large raid
    does not burn through the channel-create rate limit. A failed create
    is recorded in `missing` and the loop moves on.

    Only name and kind are restored. Overwrites, parent category and
    position are captured but not reapplied to recreated channels.
"""

import asyncio
from collections import Counter
from typing import Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING

import discord

from raidwarden.core.logger import logger
from raidwarden.core.constants import CHANNEL_RECREATE_DELAY
from raidwarden.core.database import get_db, guild_backup_key
from raidwarden.core.models import (
    ChannelRecord,
    GuildChannelSnapshot,
    PermissionOverwriteRecord,
    ReconcileResult,
)
from raidwarden.utils.discord_rate_limit import log_http_error
from raidwarden.utils.sliding_window import Clock, now_ms

if TYPE_CHECKING:
    from raidwarden.core.database import DatabaseManager


RECREATE_REASON = "Raid Warden: restoring deleted channel"


# =============================================================================
# Channel Capture
# =============================================================================

def channel_kind(channel: discord.abc.GuildChannel) -> str:
    """Stable kind name for a channel ("text", "voice", "category", ...)."""
    return channel.type.name


def _capture_overwrites(channel: discord.abc.GuildChannel) -> List[PermissionOverwriteRecord]:
    records = []
    for target, overwrite in channel.overwrites.items():
        allow, deny = overwrite.pair()
        records.append(PermissionOverwriteRecord(
            principal_id=target.id,
            allow_mask=allow.value,
            deny_mask=deny.value,
            principal_kind="role" if isinstance(target, discord.Role) else "member",
        ))
    return records


def capture_channel(channel: discord.abc.GuildChannel) -> ChannelRecord:
    """Build a ChannelRecord from a live channel."""
    return ChannelRecord(
        id=channel.id,
        name=channel.name,
        kind=channel_kind(channel),
        parent_id=channel.category_id,
        position=channel.position,
        permission_overwrites=_capture_overwrites(channel),
    )


# =============================================================================
# Guild Backup Service
# =============================================================================

class GuildBackupService:
    """
    Snapshot and reconcile guild channels.

    Attributes:
        store: Snapshot store holding the latest snapshot per guild.
        recreate_delay: Seconds between channel recreation attempts.
    """

    def __init__(
        self,
        store: Optional["DatabaseManager"] = None,
        clock: Optional[Clock] = None,
        recreate_delay: float = CHANNEL_RECREATE_DELAY,
    ) -> None:
        self.store = store if store is not None else get_db()
        self._clock: Clock = clock or now_ms
        self.recreate_delay = recreate_delay

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self, guild: discord.Guild) -> GuildChannelSnapshot:
        """
        Capture the guild's current channels and store them.

        Raises:
            sqlite3.Error: If the snapshot could not be persisted.
        """
        snap = GuildChannelSnapshot(
            taken_at=self._clock(),
            guild_id=guild.id,
            channels=[capture_channel(c) for c in guild.channels],
        )
        self.store.put(guild_backup_key(guild.id), snap.to_dict())

        logger.debug("Guild Snapshot Stored", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channels", str(len(snap.channels))),
        ])
        return snap

    def latest_snapshot(self, guild_id: int) -> Optional[GuildChannelSnapshot]:
        """Load the stored snapshot for a guild, or None."""
        data = self.store.get(guild_backup_key(guild_id))
        if data is None:
            return None
        try:
            return GuildChannelSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Guild Snapshot Unreadable", [
                ("Guild", str(guild_id)),
                ("Error", str(e)[:100]),
            ])
            return None

    # =========================================================================
    # Reconcile
    # =========================================================================

    def _creator(
        self,
        guild: discord.Guild,
        kind: str,
    ) -> Optional[Callable[[str], Awaitable[discord.abc.GuildChannel]]]:
        creators: Dict[str, Callable[[str], Awaitable[discord.abc.GuildChannel]]] = {
            "text": lambda name: guild.create_text_channel(name, reason=RECREATE_REASON),
            "news": lambda name: guild.create_text_channel(name, news=True, reason=RECREATE_REASON),
            "voice": lambda name: guild.create_voice_channel(name, reason=RECREATE_REASON),
            "category": lambda name: guild.create_category(name, reason=RECREATE_REASON),
            "stage_voice": lambda name: guild.create_stage_channel(name, reason=RECREATE_REASON),
            "forum": lambda name: guild.create_forum(name, reason=RECREATE_REASON),
        }
        return creators.get(kind)

    async def reconcile(self, guild: discord.Guild) -> ReconcileResult:
        """
        Recreate channels present in the latest snapshot but absent now.

        Returns:
            ReconcileResult with the number recreated and the names that
            could not be recreated.
        """
        snap = self.latest_snapshot(guild.id)
        if snap is None:
            logger.info("Reconcile Skipped (No Backup)", [
                ("Guild", f"{guild.name} ({guild.id})"),
            ])
            return ReconcileResult(recreated=0, missing=[], has_backup=False)

        # Multiset so two recorded channels sharing (name, kind) each need a match
        present = Counter((c.name, channel_kind(c)) for c in guild.channels)
        result = ReconcileResult()
        attempted = False

        for record in snap.channels:
            if present[record.identity] > 0:
                present[record.identity] -= 1
                continue

            create = self._creator(guild, record.kind)
            if create is None:
                logger.warning("Unsupported Channel Kind", [
                    ("Channel", record.name),
                    ("Kind", record.kind),
                ])
                result.missing.append(record.name)
                continue

            if attempted and self.recreate_delay > 0:
                await asyncio.sleep(self.recreate_delay)
            attempted = True

            try:
                await create(record.name)
                result.recreated += 1
            except discord.HTTPException as e:
                log_http_error(e, "Channel Recreate", [
                    ("Guild", str(guild.id)),
                    ("Channel", record.name),
                    ("Kind", record.kind),
                ])
                result.missing.append(record.name)
            except Exception as e:
                logger.error("Channel Recreate Failed", [
                    ("Guild", str(guild.id)),
                    ("Channel", record.name),
                    ("Error", str(e)[:100]),
                    ("Type", type(e).__name__),
                ])
                result.missing.append(record.name)

        logger.tree("CHANNELS RECONCILED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Snapshot Channels", str(len(snap.channels))),
            ("Recreated", str(result.recreated)),
            ("Missing", ", ".join(result.missing)[:100] or "None"),
        ], emoji="🧱")

        return result


__all__ = ["GuildBackupService", "capture_channel", "channel_kind"]
