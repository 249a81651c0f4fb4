"""
Raid Warden - Raid Alert Builders
=================================

Embeds and short notes posted to the alert channel and the operator DM.
"""

from datetime import datetime
from typing import List, Optional

import discord

from raidwarden.core.config import EmbedColors
from raidwarden.core.constants import ALERT_DESCRIPTION_MAX
from raidwarden.core.logger import NY_TZ
from raidwarden.core.models import QuarantineOutcome, ReconcileResult
from raidwarden.services.raid_detection.constants import DETECTOR_LABELS


def format_suspects(suspects: List[int]) -> str:
    """Mention list for suspects, or "unknown" when attribution found nobody."""
    if not suspects:
        return "unknown"
    return ", ".join(f"<@{s}> (`{s}`)" for s in suspects)


def build_raid_embed(
    guild: discord.Guild,
    description: str,
    suspects: List[int],
    detector: Optional[str] = None,
) -> discord.Embed:
    """Main raid alert embed."""
    embed = discord.Embed(
        title="🚨 RAID DETECTED",
        description=description[:ALERT_DESCRIPTION_MAX],
        color=EmbedColors.ALERT,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="Server", value=f"{guild.name} (`{guild.id}`)", inline=True)
    if detector:
        embed.add_field(name="Detector", value=DETECTOR_LABELS.get(detector, detector), inline=True)
    embed.add_field(
        name="Suspected Actors",
        value=format_suspects(suspects)[:ALERT_DESCRIPTION_MAX],
        inline=False,
    )
    return embed


def quarantine_note(member_id: int, outcome: QuarantineOutcome) -> str:
    """One-line result of quarantining a single suspect."""
    if outcome.ok:
        return f"🔒 Quarantined <@{member_id}> ({len(outcome.previous_roles or [])} roles backed up)"
    return f"⚠️ Could not quarantine <@{member_id}>: `{outcome.reason.value}`"


def build_reconcile_embed(result: ReconcileResult) -> discord.Embed:
    """Summary of a channel reconciliation."""
    if not result.has_backup:
        return discord.Embed(
            title="🧱 Channel Restore",
            description="No channel backup exists for this server yet.",
            color=EmbedColors.WARNING,
            timestamp=datetime.now(NY_TZ),
        )

    embed = discord.Embed(
        title="🧱 Channel Restore",
        color=EmbedColors.WARNING if result.missing else EmbedColors.SUCCESS,
        timestamp=datetime.now(NY_TZ),
    )
    embed.add_field(name="Recreated", value=f"`{result.recreated}`", inline=True)
    embed.add_field(
        name="Could Not Recreate",
        value=(", ".join(f"#{n}" for n in result.missing) or "None")[:ALERT_DESCRIPTION_MAX],
        inline=False,
    )
    return embed


__all__ = [
    "format_suspects",
    "build_raid_embed",
    "quarantine_note",
    "build_reconcile_embed",
]
