"""
Raid Warden - Guard Events
==========================

Forwards guild events to the raid detection service.

DESIGN:
    Events from guilds outside the configured scope are dropped here so
    detectors only ever count the protected guild. Detection exceptions
    are logged and never propagate into discord.py's dispatcher.
"""

from typing import TYPE_CHECKING, Awaitable, Optional

import discord
from discord.ext import commands

from raidwarden.core.logger import logger
from raidwarden.core.config import get_config

if TYPE_CHECKING:
    from raidwarden.bot import WardenBot


class GuardEvents(commands.Cog):
    """Raid detection event listeners."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot
        self.config = get_config()

    def _in_scope(self, guild: Optional[discord.Guild]) -> bool:
        if guild is None:
            return False
        return self.config.guild_id is None or guild.id == self.config.guild_id

    async def _dispatch(self, event: str, handler: Awaitable[bool]) -> None:
        try:
            await handler
        except Exception as e:
            logger.error("Guard Event Failed", [
                ("Event", event),
                ("Error", str(e)[:100]),
                ("Type", type(e).__name__),
            ])

    # =========================================================================
    # Listeners
    # =========================================================================

    @commands.Cog.listener()
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        if not self._in_scope(channel.guild) or not self.bot.detection_service:
            return
        await self._dispatch("channel_delete", self.bot.detection_service.on_channel_delete(channel))

    @commands.Cog.listener()
    async def on_guild_role_delete(self, role: discord.Role) -> None:
        if not self._in_scope(role.guild) or not self.bot.detection_service:
            return
        await self._dispatch("role_delete", self.bot.detection_service.on_role_delete(role))

    @commands.Cog.listener()
    async def on_member_ban(self, guild: discord.Guild, user: discord.abc.User) -> None:
        if not self._in_scope(guild) or not self.bot.detection_service:
            return
        await self._dispatch("member_ban", self.bot.detection_service.on_ban(guild, user))

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if not self._in_scope(message.guild) or not self.bot.detection_service:
            return
        await self._dispatch("message", self.bot.detection_service.on_message(message))


async def setup(bot: "WardenBot") -> None:
    """Load the GuardEvents cog."""
    await bot.add_cog(GuardEvents(bot))


__all__ = ["GuardEvents", "setup"]
