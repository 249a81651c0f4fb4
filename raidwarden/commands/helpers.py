"""
Raid Warden - Command Helpers
=============================

Shared guards for operator commands.
"""

from typing import Optional

import discord

from raidwarden.core.config import is_guild_admin


async def require_admin(interaction: discord.Interaction) -> Optional[discord.Guild]:
    """
    Check that the command runs in a guild and the caller may operate the bot.

    Sends the ephemeral refusal itself.

    Returns:
        The guild, or None if the caller was refused.
    """
    if interaction.guild is None:
        await interaction.response.send_message(
            "This command can only be used in a server.",
            ephemeral=True,
        )
        return None

    if not is_guild_admin(interaction.user):
        await interaction.response.send_message(
            "Only the server owner, administrators or the bot operator can use this command.",
            ephemeral=True,
        )
        return None

    return interaction.guild


__all__ = ["require_admin"]
