"""
Raid Warden - Bot
=================

The WardenBot client: builds services, loads cogs and runs the
snapshot sweep.

DESIGN:
    Services are constructed in setup_hook so they exist before any
    event cog is registered. The snapshot scheduler needs the guild
    cache, so it starts on the first on_ready only; reconnects skip
    re-initialization.

    Startup order:
       - Store and services
       - Command and event cogs
       - Command tree syncing
       - Snapshot scheduler (on first ready)
"""

from datetime import datetime
from typing import List, Optional

import discord
from discord.ext import commands

from raidwarden.core.logger import logger
from raidwarden.core.config import get_config
from raidwarden.core.database import get_db
from raidwarden.services.guild_backup import GuildBackupService, SnapshotScheduler
from raidwarden.services.quarantine import QuarantineService
from raidwarden.services.raid_detection import RaidDetectionService
from raidwarden.services.raid_response import RaidResponseService


class WardenBot(commands.Bot):
    """Discord client hosting the raid detection and response services."""

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self) -> None:
        self.config = get_config()

        intents = discord.Intents.default()
        intents.members = True
        intents.message_content = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
        )

        self.db = get_db(self.config.database_path)
        self.start_time: datetime = datetime.now()

        # Service placeholders
        self.quarantine_service: Optional[QuarantineService] = None
        self.backup_service: Optional[GuildBackupService] = None
        self.response_service: Optional[RaidResponseService] = None
        self.detection_service: Optional[RaidDetectionService] = None
        self.snapshot_scheduler: Optional[SnapshotScheduler] = None

        # Ready state guard
        self._ready_initialized: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Scope
    # =========================================================================

    def protected_guilds(self) -> List[discord.Guild]:
        """Guilds this deployment protects."""
        if self.config.guild_id is None:
            return list(self.guilds)
        guild = self.get_guild(self.config.guild_id)
        return [guild] if guild else []

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Build services, load cogs and sync commands before on_ready."""
        self._init_services()

        from raidwarden.commands import COMMAND_COGS
        for cog in COMMAND_COGS:
            try:
                await self.load_extension(cog)
                logger.info(f"Cog Loaded: {cog.split('.')[-1]}")
            except commands.ExtensionError as e:
                logger.error("Failed to Load Cog", [("Cog", cog), ("Error", str(e))])

        from raidwarden.events import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
                logger.debug(f"Event Cog Loaded: {cog.split('.')[-1]}")
            except commands.ExtensionError as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

        try:
            if self.config.guild_id is not None:
                target = discord.Object(id=self.config.guild_id)
                self.tree.copy_global_to(guild=target)
                synced = await self.tree.sync(guild=target)
            else:
                synced = await self.tree.sync()
            logger.tree("Commands Synced", [("Count", str(len(synced)))], emoji="✅")
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e))])

    def _init_services(self) -> None:
        self.quarantine_service = QuarantineService(self.db, self.config)
        self.backup_service = GuildBackupService(self.db)
        self.response_service = RaidResponseService(
            self,
            self.quarantine_service,
            self.backup_service,
            self.config,
        )
        self.detection_service = RaidDetectionService(self, self.response_service, self.config)
        self.snapshot_scheduler = SnapshotScheduler(
            self.backup_service,
            self.protected_guilds,
            interval=self.config.snapshot_interval_seconds,
        )

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        """Start the snapshot sweep once the guild cache is populated."""
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url)

        guilds = self.protected_guilds()
        logger.tree("BOT ONLINE", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
            ("Protected", ", ".join(g.name for g in guilds)[:100] or "None"),
        ], emoji="🚀")

        if self.config.guild_id is not None and not guilds:
            logger.warning("Configured Guild Not Found", [
                ("Guild ID", str(self.config.guild_id)),
            ])

        if self.snapshot_scheduler:
            await self.snapshot_scheduler.start()

        logger.tree("RAID WARDEN READY", [
            ("Detection", "Online" if self.detection_service else "Offline"),
            ("Auto-Quarantine", "Enabled" if self.config.auto_quarantine else "Disabled"),
            ("Snapshots", "Running" if self.snapshot_scheduler and self.snapshot_scheduler.running else "Stopped"),
        ], emoji="🛡️")

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def close(self) -> None:
        """Stop the snapshot sweep and close the store before disconnecting."""
        logger.info("Initiating Graceful Shutdown")

        if self.snapshot_scheduler:
            await self.snapshot_scheduler.stop()

        self.db.close()
        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")


__all__ = ["WardenBot"]
