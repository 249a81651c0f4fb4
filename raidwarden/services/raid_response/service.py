"""
Raid Warden - Raid Response Service
===================================

Runs the response to a detected raid.

DESIGN:
    Four isolated steps, always in this order:
        1. Alert embed to the alert channel (created if missing)
        2. Operator DM, best effort
        3. Quarantine each suspect (only with auto-quarantine and suspects)
        4. Reconcile channels from the latest snapshot

    A step that fails is logged and reported as a StepResult; the next
    step still runs. Suspects are quarantined one at a time with a pause
    between them, and one failed suspect does not stop the rest.
"""

import asyncio
from typing import List, Optional, TYPE_CHECKING

import discord

from raidwarden.core.logger import logger
from raidwarden.core.config import Config, get_config
from raidwarden.core.constants import QUARANTINE_DELAY
from raidwarden.core.models import ErrorKind, StepResult
from raidwarden.services.raid_detection.constants import DETECTOR_LABELS
from raidwarden.utils.discord_rate_limit import describe_http_error, log_http_error
from raidwarden.utils.dm_helpers import safe_send_dm

from .alerts import build_raid_embed, build_reconcile_embed, quarantine_note

if TYPE_CHECKING:
    from raidwarden.services.guild_backup import GuildBackupService
    from raidwarden.services.quarantine import QuarantineService


STEP_ALERT = "alert"
STEP_OPERATOR_DM = "operator_dm"
STEP_QUARANTINE = "quarantine"
STEP_RECONCILE = "reconcile"


class RaidResponseService:
    """
    Alert, quarantine and restore in response to a raid.

    Attributes:
        quarantine: Quarantine service used for suspects.
        backup: Guild backup service used to recreate channels.
        quarantine_delay: Seconds between per-suspect quarantines.
    """

    def __init__(
        self,
        bot: discord.Client,
        quarantine: "QuarantineService",
        backup: "GuildBackupService",
        config: Optional[Config] = None,
        quarantine_delay: float = QUARANTINE_DELAY,
    ) -> None:
        self.bot = bot
        self.quarantine = quarantine
        self.backup = backup
        self.config = config if config is not None else get_config()
        self.quarantine_delay = quarantine_delay

    # =========================================================================
    # Alert Channel
    # =========================================================================

    async def get_alert_channel(self, guild: discord.Guild) -> Optional[discord.TextChannel]:
        """
        Find the alert channel by name, creating a private one if absent.

        Raises:
            discord.HTTPException: If the channel had to be created and creation failed.
        """
        channel = discord.utils.get(guild.text_channels, name=self.config.alert_channel_name)
        if channel is not None:
            return channel

        overwrites = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            guild.me: discord.PermissionOverwrite(view_channel=True, send_messages=True, embed_links=True),
        }
        channel = await guild.create_text_channel(
            self.config.alert_channel_name,
            overwrites=overwrites,
            reason="Raid Warden: alert channel",
        )
        logger.tree("Alert Channel Created", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel", f"#{channel.name} ({channel.id})"),
        ], emoji="📢")
        return channel

    async def _post(self, channel: Optional[discord.abc.Messageable], **kwargs) -> bool:
        """Send to the alert channel if we have one. Never raises."""
        if channel is None:
            return False
        try:
            await channel.send(**kwargs)
            return True
        except discord.HTTPException as e:
            log_http_error(e, "Alert Channel Post", [
                ("Channel", str(getattr(channel, "id", "?"))),
            ])
            return False

    # =========================================================================
    # Raid Response
    # =========================================================================

    async def handle_raid(
        self,
        guild: discord.Guild,
        description: str,
        suspects: List[int],
        detector: Optional[str] = None,
    ) -> List[StepResult]:
        """
        Respond to a detected raid.

        Args:
            guild: Guild under attack.
            description: Human-readable summary of what was detected.
            suspects: Suspected actor ids, possibly empty.
            detector: Name of the detector that fired.

        Returns:
            One StepResult per step, in execution order.
        """
        logger.tree("RAID RESPONSE STARTED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Detector", DETECTOR_LABELS.get(detector, detector or "manual")),
            ("Suspects", str(len(suspects))),
            ("Auto-Quarantine", "Enabled" if self.config.auto_quarantine else "Disabled"),
        ], emoji="🚨")

        channel: Optional[discord.TextChannel] = None
        results: List[StepResult] = []

        # ---------------------------------------------------------------------
        # Step 1: Alert
        # ---------------------------------------------------------------------
        embed = build_raid_embed(guild, description, suspects, detector)
        try:
            channel = await self.get_alert_channel(guild)
            await channel.send(
                content=f"<@{self.config.owner_id}> 🚨 **RAID DETECTED**",
                embed=embed,
            )
            results.append(StepResult(STEP_ALERT, ok=True))
        except discord.HTTPException as e:
            log_http_error(e, "Raid Alert", [("Guild", f"{guild.name} ({guild.id})")])
            results.append(StepResult(
                STEP_ALERT, ok=False,
                error_kind=ErrorKind.EXTERNAL_CALL_FAILED,
                detail=describe_http_error(e),
            ))
        except Exception as e:
            logger.error("Raid Alert Failed", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Error", str(e)[:100]),
                ("Type", type(e).__name__),
            ])
            results.append(StepResult(
                STEP_ALERT, ok=False,
                error_kind=ErrorKind.EXTERNAL_CALL_FAILED,
                detail=str(e)[:100],
            ))

        # ---------------------------------------------------------------------
        # Step 2: Operator DM
        # ---------------------------------------------------------------------
        results.append(await self._notify_operator(embed))

        # ---------------------------------------------------------------------
        # Step 3: Quarantine suspects
        # ---------------------------------------------------------------------
        try:
            results.append(await self._quarantine_suspects(guild, channel, suspects, detector))
        except Exception as e:
            logger.error("Suspect Quarantine Failed", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Error", str(e)[:100]),
                ("Type", type(e).__name__),
            ])
            results.append(StepResult(
                STEP_QUARANTINE, ok=False,
                error_kind=ErrorKind.EXTERNAL_CALL_FAILED,
                detail=str(e)[:100],
            ))

        # ---------------------------------------------------------------------
        # Step 4: Reconcile channels
        # ---------------------------------------------------------------------
        try:
            reconcile = await self.backup.reconcile(guild)
            await self._post(channel, embed=build_reconcile_embed(reconcile))
            results.append(StepResult(
                STEP_RECONCILE,
                ok=not reconcile.missing,
                error_kind=ErrorKind.EXTERNAL_CALL_FAILED if reconcile.missing else None,
                detail=f"{reconcile.recreated} recreated, {len(reconcile.missing)} missing",
            ))
        except Exception as e:
            logger.error("Channel Reconcile Failed", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Error", str(e)[:100]),
                ("Type", type(e).__name__),
            ])
            await self._post(channel, content=f"⚠️ Channel restore failed: `{str(e)[:200]}`")
            results.append(StepResult(
                STEP_RECONCILE, ok=False,
                error_kind=ErrorKind.EXTERNAL_CALL_FAILED,
                detail=str(e)[:100],
            ))

        logger.tree("RAID RESPONSE COMPLETE", [
            (r.step, "OK" if r.ok else f"FAILED ({r.error_kind.value if r.error_kind else '?'})")
            for r in results
        ], emoji="✅" if all(r.ok for r in results) else "⚠️")

        return results

    # =========================================================================
    # Steps
    # =========================================================================

    async def _notify_operator(self, embed: discord.Embed) -> StepResult:
        """DM the operator. Failure is reported, never raised."""
        user = self.bot.get_user(self.config.owner_id)
        if user is None:
            try:
                user = await self.bot.fetch_user(self.config.owner_id)
            except discord.HTTPException as e:
                log_http_error(e, "Operator Fetch", [("User ID", str(self.config.owner_id))])
                return StepResult(
                    STEP_OPERATOR_DM, ok=False,
                    error_kind=ErrorKind.DELIVERY_FAILED,
                    detail=describe_http_error(e),
                )

        delivered = await safe_send_dm(user, embed=embed, context="Raid Alert DM")
        if delivered:
            return StepResult(STEP_OPERATOR_DM, ok=True)
        return StepResult(
            STEP_OPERATOR_DM, ok=False,
            error_kind=ErrorKind.DELIVERY_FAILED,
            detail="DM not delivered",
        )

    async def _quarantine_suspects(
        self,
        guild: discord.Guild,
        channel: Optional[discord.TextChannel],
        suspects: List[int],
        detector: Optional[str],
    ) -> StepResult:
        if not self.config.auto_quarantine:
            return StepResult(STEP_QUARANTINE, ok=True, detail="skipped: auto-quarantine disabled")
        if not suspects:
            return StepResult(STEP_QUARANTINE, ok=True, detail="skipped: no suspects")

        reason = f"Raid Warden: {DETECTOR_LABELS.get(detector, 'raid')} auto-quarantine"
        quarantined = 0
        refused = 0
        failed = 0

        for index, member_id in enumerate(suspects):
            if index > 0 and self.quarantine_delay > 0:
                await asyncio.sleep(self.quarantine_delay)

            try:
                member = await self.quarantine.resolve_member(guild, member_id)
                outcome = await self.quarantine.quarantine(guild, member, reason)
            except Exception as e:
                failed += 1
                logger.error("Suspect Quarantine Error", [
                    ("Member", str(member_id)),
                    ("Error", str(e)[:100]),
                    ("Type", type(e).__name__),
                ])
                await self._post(channel, content=f"⚠️ Could not quarantine <@{member_id}>: `{type(e).__name__}`")
                continue

            if outcome.ok:
                quarantined += 1
            elif outcome.reason.error_kind == ErrorKind.REFUSED_BY_POLICY:
                refused += 1
            else:
                failed += 1

            await self._post(channel, content=quarantine_note(member_id, outcome))

        return StepResult(
            STEP_QUARANTINE,
            ok=failed == 0,
            error_kind=ErrorKind.EXTERNAL_CALL_FAILED if failed else None,
            detail=f"{quarantined} quarantined, {refused} refused, {failed} failed",
        )


__all__ = [
    "RaidResponseService",
    "STEP_ALERT",
    "STEP_OPERATOR_DM",
    "STEP_QUARANTINE",
    "STEP_RECONCILE",
]
