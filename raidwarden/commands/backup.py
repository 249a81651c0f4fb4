"""
Raid Warden - Backup Commands
=============================

/backup and /restore for on-demand channel snapshots.
"""

import sqlite3
from datetime import datetime
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from raidwarden.core.logger import logger, NY_TZ
from raidwarden.core.config import EmbedColors
from raidwarden.services.raid_response.alerts import build_reconcile_embed
from raidwarden.utils.discord_rate_limit import log_http_error

from .helpers import require_admin

if TYPE_CHECKING:
    from raidwarden.bot import WardenBot


class BackupCog(commands.Cog):
    """Channel snapshot and restore commands."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

        logger.tree("Backup Cog Loaded", [
            ("Commands", "/backup, /restore"),
        ], emoji="💾")

    # =========================================================================
    # /backup
    # =========================================================================

    @app_commands.command(name="backup", description="Snapshot this server's channels now")
    @app_commands.guild_only()
    async def backup(self, interaction: discord.Interaction) -> None:
        guild = await require_admin(interaction)
        if guild is None:
            return

        await interaction.response.defer(ephemeral=True)

        logger.tree("BACKUP COMMAND", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("User", f"{interaction.user} ({interaction.user.id})"),
        ], emoji="💾")

        try:
            snap = self.bot.backup_service.snapshot(guild)
        except sqlite3.Error as e:
            logger.error("Manual Backup Failed", [
                ("Guild", str(guild.id)),
                ("Error", str(e)[:100]),
            ])
            await interaction.followup.send(f"❌ Backup failed: `{str(e)[:200]}`", ephemeral=True)
            return

        embed = discord.Embed(
            title="💾 Channel Backup Saved",
            description=f"Captured **{len(snap.channels)}** channels.",
            color=EmbedColors.SUCCESS,
            timestamp=datetime.now(NY_TZ),
        )
        try:
            await interaction.followup.send(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            log_http_error(e, "Backup Command Reply", [("Guild", str(guild.id))])

    # =========================================================================
    # /restore
    # =========================================================================

    @app_commands.command(name="restore", description="Recreate channels deleted since the last backup")
    @app_commands.guild_only()
    async def restore(self, interaction: discord.Interaction) -> None:
        guild = await require_admin(interaction)
        if guild is None:
            return

        await interaction.response.defer(ephemeral=True)

        logger.tree("RESTORE COMMAND", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("User", f"{interaction.user} ({interaction.user.id})"),
        ], emoji="🧱")

        result = await self.bot.backup_service.reconcile(guild)
        try:
            await interaction.followup.send(embed=build_reconcile_embed(result), ephemeral=True)
        except discord.HTTPException as e:
            log_http_error(e, "Restore Command Reply", [("Guild", str(guild.id))])


async def setup(bot: "WardenBot") -> None:
    """Load the Backup cog."""
    await bot.add_cog(BackupCog(bot))


__all__ = ["BackupCog", "setup"]
