"""
Raid Warden - Member Quarantine Commands
========================================

/quarantine and /release for operator-driven quarantine.

DESIGN:
    Both commands go through QuarantineService so manual actions obey
    the same refusal rules and role backups as automatic ones.
"""

from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from raidwarden.core.logger import logger
from raidwarden.core.models import QuarantineReason
from raidwarden.utils.discord_rate_limit import log_http_error

from .helpers import require_admin

if TYPE_CHECKING:
    from raidwarden.bot import WardenBot


REASON_MESSAGES = {
    QuarantineReason.MEMBER_ABSENT: "That user is not in this server.",
    QuarantineReason.BOT_ACCOUNT: "Bot accounts are never quarantined.",
    QuarantineReason.GUILD_OWNER: "The server owner cannot be quarantined.",
    QuarantineReason.PROTECTED: "That user is on the protected list.",
    QuarantineReason.ROLE_UNAVAILABLE: "The quarantine role could not be created.",
    QuarantineReason.BACKUP_FAILED: "Their roles could not be backed up, so nothing was changed.",
    QuarantineReason.ROLE_ASSIGN_FAILED: "Their roles could not be changed. Check the bot's role position.",
    QuarantineReason.NO_BACKUP: "No role backup exists for that user.",
    QuarantineReason.MEMBER_NOT_FOUND: "That user is no longer in this server.",
    QuarantineReason.RESTORE_FAILED: "Their roles could not be restored. Check the bot's role position.",
}


class MembersCog(commands.Cog):
    """Manual quarantine and release commands."""

    def __init__(self, bot: "WardenBot") -> None:
        self.bot = bot

        logger.tree("Members Cog Loaded", [
            ("Commands", "/quarantine, /release"),
        ], emoji="🔒")

    async def _reply(self, interaction: discord.Interaction, message: str) -> None:
        try:
            await interaction.followup.send(message, ephemeral=True)
        except discord.HTTPException as e:
            log_http_error(e, "Member Command Reply")

    # =========================================================================
    # /quarantine
    # =========================================================================

    @app_commands.command(name="quarantine", description="Strip a member to the quarantine role")
    @app_commands.describe(member="Member to quarantine", reason="Reason shown in the audit log")
    @app_commands.guild_only()
    async def quarantine(
        self,
        interaction: discord.Interaction,
        member: discord.Member,
        reason: Optional[str] = None,
    ) -> None:
        guild = await require_admin(interaction)
        if guild is None:
            return

        await interaction.response.defer(ephemeral=True)

        audit_reason = f"Raid Warden: manual quarantine by {interaction.user} ({reason or 'no reason'})"
        logger.tree("QUARANTINE COMMAND", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("User", f"{interaction.user} ({interaction.user.id})"),
            ("Target", f"{member} ({member.id})"),
            ("Reason", reason or "None"),
        ], emoji="🔒")

        outcome = await self.bot.quarantine_service.quarantine(guild, member, audit_reason)
        if outcome.ok:
            await self._reply(
                interaction,
                f"🔒 {member.mention} quarantined. "
                f"{len(outcome.previous_roles or [])} roles backed up; use `/release` to restore them.",
            )
        else:
            await self._reply(interaction, f"❌ {REASON_MESSAGES.get(outcome.reason, outcome.reason.value)}")

    # =========================================================================
    # /release
    # =========================================================================

    @app_commands.command(name="release", description="Restore a quarantined member's roles")
    @app_commands.describe(member="Member to release")
    @app_commands.guild_only()
    async def release(self, interaction: discord.Interaction, member: discord.User) -> None:
        guild = await require_admin(interaction)
        if guild is None:
            return

        await interaction.response.defer(ephemeral=True)

        logger.tree("RELEASE COMMAND", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("User", f"{interaction.user} ({interaction.user.id})"),
            ("Target", f"{member} ({member.id})"),
        ], emoji="🔓")

        outcome = await self.bot.quarantine_service.restore_roles(guild, member.id)
        if outcome.ok:
            await self._reply(
                interaction,
                f"🔓 Restored {len(outcome.previous_roles or [])} roles to {member.mention}.",
            )
        else:
            await self._reply(interaction, f"❌ {REASON_MESSAGES.get(outcome.reason, outcome.reason.value)}")


async def setup(bot: "WardenBot") -> None:
    """Load the Members cog."""
    await bot.add_cog(MembersCog(bot))


__all__ = ["MembersCog", "setup"]
