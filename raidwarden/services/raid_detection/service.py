"""
Raid Warden - Raid Detection Service
====================================

Feeds guild events into the detectors and hands triggered raids to the
response orchestrator.

DESIGN:
    Each of channel-delete, role-delete and ban owns one counter shared
    across guilds; deployments are normally scoped to a single guild via
    GUILD_ID. Message flood counts per (guild, author).

    Audit log attribution only runs after a trigger, never per event.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING

import discord

from raidwarden.core.logger import logger
from raidwarden.core.config import Config, get_config
from raidwarden.utils.sliding_window import Clock

from .attribution import gather_suspects
from .constants import (
    AUDIT_ACTIONS,
    CHANNEL_DELETE,
    DETECTOR_LABELS,
    MEMBER_BAN,
    MESSAGE_FLOOD,
    ROLE_DELETE,
)
from .detectors import MessageFloodDetector, RaidDetector

if TYPE_CHECKING:
    from raidwarden.services.raid_response import RaidResponseService


class RaidDetectionService:
    """
    Event entry points for the four raid detectors.

    Attributes:
        detectors: Audit-attributed detectors keyed by name.
        flood: Per-author message flood detector.
    """

    def __init__(
        self,
        bot: discord.Client,
        response: "RaidResponseService",
        config: Optional[Config] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.bot = bot
        self.response = response
        self.config = config if config is not None else get_config()

        window_ms = self.config.raid_window_ms
        self.detectors: Dict[str, RaidDetector] = {
            CHANNEL_DELETE: RaidDetector(CHANNEL_DELETE, self.config.channel_delete_threshold, window_ms, clock),
            ROLE_DELETE: RaidDetector(ROLE_DELETE, self.config.role_delete_threshold, window_ms, clock),
            MEMBER_BAN: RaidDetector(MEMBER_BAN, self.config.ban_threshold, window_ms, clock),
        }
        self.flood = MessageFloodDetector(MESSAGE_FLOOD, self.config.message_flood_threshold, window_ms, clock)

        logger.tree("Raid Detection Service Loaded", [
            ("Channel Delete", f"{self.config.channel_delete_threshold} / {self.config.raid_window_seconds}s"),
            ("Role Delete", f"{self.config.role_delete_threshold} / {self.config.raid_window_seconds}s"),
            ("Ban", f"{self.config.ban_threshold} / {self.config.raid_window_seconds}s"),
            ("Message Flood", f"{self.config.message_flood_threshold} / {self.config.raid_window_seconds}s per author"),
        ], emoji="🛡️")

    @property
    def _bot_id(self) -> Optional[int]:
        return self.bot.user.id if self.bot.user else None

    # =========================================================================
    # Event Handlers
    # =========================================================================

    async def on_channel_delete(self, channel: discord.abc.GuildChannel) -> bool:
        """Count a channel deletion. Returns True if it triggered a raid response."""
        return await self._observe(
            CHANNEL_DELETE,
            channel.guild,
            f"Mass channel deletion detected (last deleted: #{channel.name})",
        )

    async def on_role_delete(self, role: discord.Role) -> bool:
        """Count a role deletion. Returns True if it triggered a raid response."""
        return await self._observe(
            ROLE_DELETE,
            role.guild,
            f"Mass role deletion detected (last deleted: @{role.name})",
        )

    async def on_ban(self, guild: discord.Guild, user: discord.abc.User) -> bool:
        """Count a member ban. Returns True if it triggered a raid response."""
        return await self._observe(
            MEMBER_BAN,
            guild,
            f"Mass banning detected (last banned: {user} `{user.id}`)",
        )

    async def on_message(self, message: discord.Message) -> bool:
        """
        Count a guild message against its author's flood window.

        Direct messages, webhook posts and the bot's own messages are ignored.
        """
        if message.guild is None or message.webhook_id is not None:
            return False
        if message.author.id == self._bot_id:
            return False

        count = self.flood.observe(message.guild.id, message.author.id)
        if count is None:
            return False

        description = (
            f"Message flood detected: {message.author} sent {count} messages "
            f"in {self.config.raid_window_seconds}s"
        )
        logger.tree("RAID DETECTED", [
            ("Detector", DETECTOR_LABELS[MESSAGE_FLOOD]),
            ("Guild", f"{message.guild.name} ({message.guild.id})"),
            ("Author", f"{message.author} ({message.author.id})"),
            ("Count", str(count)),
        ], emoji="🚨")

        await self.response.handle_raid(
            message.guild,
            description,
            [message.author.id],
            detector=MESSAGE_FLOOD,
        )
        return True

    # =========================================================================
    # Trigger
    # =========================================================================

    async def _observe(self, name: str, guild: discord.Guild, description: str) -> bool:
        detector = self.detectors[name]
        count = detector.observe()
        if count is None:
            return False

        logger.tree("RAID DETECTED", [
            ("Detector", DETECTOR_LABELS[name]),
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Count", f"{count} in {self.config.raid_window_seconds}s"),
        ], emoji="🚨")

        suspects = await gather_suspects(
            guild,
            AUDIT_ACTIONS[name],
            detector.window_ms,
            self._bot_id,
        )
        await self.response.handle_raid(guild, description, suspects, detector=name)
        return True

    # =========================================================================
    # Status
    # =========================================================================

    def status(self) -> Dict[str, Any]:
        """In-window counts per detector plus flood tracking size."""
        counts: Dict[str, Any] = {
            name: {"count": d.count(), "threshold": d.threshold}
            for name, d in self.detectors.items()
        }
        counts[MESSAGE_FLOOD] = {
            "count": self.flood.busiest(),
            "threshold": self.flood.threshold,
            "tracked_pairs": self.flood.tracked_pairs,
        }
        return counts


__all__ = ["RaidDetectionService"]
