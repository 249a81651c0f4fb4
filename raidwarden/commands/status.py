"""
Raid Warden - Status Command
============================

/status shows live detector counts and quarantine settings.
"""

from datetime import datetime
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from raidwarden.core.logger import logger, NY_TZ
from raidwarden.core.config import EmbedColors, get_config
from raidwarden.services.raid_detection.constants import DETECTOR_LABELS, MESSAGE_FLOOD
from raidwarden.utils.discord_rate_limit import log_http_error

if TYPE_CHECKING:
    from raidwarden.bot import WardenBot


class StatusCog(commands.Cog):
    """Detector status command."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot
        self.config = get_config()

    @app_commands.command(name="status", description="Show raid detector status")
    async def status(self, interaction: discord.Interaction) -> None:
        embed = discord.Embed(
            title="🛡️ Raid Warden Status",
            color=EmbedColors.INFO,
            timestamp=datetime.now(NY_TZ),
        )

        if self.bot.detection_service:
            for name, info in self.bot.detection_service.status().items():
                value = f"`{info['count']}` / `{info['threshold']}` in {self.config.raid_window_seconds}s"
                if name == MESSAGE_FLOOD:
                    value += f"\nTracking `{info['tracked_pairs']}` authors"
                embed.add_field(name=DETECTOR_LABELS.get(name, name), value=value, inline=True)
        else:
            embed.description = "Detection service is not running."

        embed.add_field(
            name="Auto-Quarantine",
            value="Enabled" if self.config.auto_quarantine else "Disabled",
            inline=True,
        )
        embed.add_field(name="Quarantine Role", value=self.config.quarantine_role_name, inline=True)

        scheduler = self.bot.snapshot_scheduler
        embed.add_field(
            name="Snapshots",
            value=f"Every `{int(scheduler.interval)}s`" if scheduler and scheduler.running else "Stopped",
            inline=True,
        )

        logger.debug("Status Command", [("User", f"{interaction.user} ({interaction.user.id})")])

        try:
            await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException as e:
            log_http_error(e, "Status Command Reply")


async def setup(bot: "WardenBot") -> None:
    """Load the Status cog."""
    await bot.add_cog(StatusCog(bot))


__all__ = ["StatusCog", "setup"]
