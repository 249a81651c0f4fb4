"""
Raid Warden - Snapshot Scheduler
================================

Periodic channel snapshot sweep over every protected guild.

DESIGN:
    One background task sleeps for the configured interval, then
    snapshots each guild in turn. A guild that fails is logged and the
    sweep moves to the next one; an unexpected error in the loop itself
    is logged and the loop waits one more interval before retrying.
"""

import asyncio
from typing import Callable, Iterable, Optional, Tuple

import discord

from raidwarden.core.logger import logger
from raidwarden.core.constants import DEFAULT_SNAPSHOT_INTERVAL
from raidwarden.services.guild_backup.service import GuildBackupService


GuildSource = Callable[[], Iterable[discord.Guild]]


class SnapshotScheduler:
    """Runs GuildBackupService.snapshot() for every guild on an interval."""

    def __init__(
        self,
        backup: GuildBackupService,
        guilds: GuildSource,
        interval: float = DEFAULT_SNAPSHOT_INTERVAL,
    ) -> None:
        """
        Args:
            backup: Service that captures and stores snapshots.
            guilds: Callable returning the guilds to sweep.
            interval: Seconds between sweeps.
        """
        self.backup = backup
        self._guilds = guilds
        self.interval = interval
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, run_immediately: bool = True) -> None:
        """
        Start the sweep loop.

        Args:
            run_immediately: Sweep once now instead of waiting an interval.
        """
        if self._running:
            return

        self._running = True

        if run_immediately:
            await self.run_sweep()

        self._task = asyncio.create_task(self._scheduler_loop())

        logger.tree("Snapshot Scheduler Started", [
            ("Interval", f"{int(self.interval)}s"),
        ], emoji="📸")

    async def stop(self) -> None:
        """Stop the sweep loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def run_sweep(self) -> Tuple[int, int]:
        """
        Snapshot every guild once.

        Returns:
            (succeeded, failed) guild counts.
        """
        succeeded = 0
        failed = 0

        for guild in list(self._guilds()):
            try:
                self.backup.snapshot(guild)
                succeeded += 1
            except Exception as e:
                failed += 1
                logger.error("Guild Snapshot Failed", [
                    ("Guild", f"{getattr(guild, 'name', '?')} ({getattr(guild, 'id', '?')})"),
                    ("Error", str(e)[:100]),
                    ("Type", type(e).__name__),
                ])

        logger.tree("Snapshot Sweep Complete", [
            ("Guilds", str(succeeded)),
            ("Failed", str(failed)),
        ], emoji="📸")

        return succeeded, failed

    async def _scheduler_loop(self) -> None:
        """Main loop - one sweep per interval."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)

                if not self._running:
                    break

                await self.run_sweep()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Snapshot Scheduler Error", [
                    ("Error", str(e)),
                    ("Type", type(e).__name__),
                ])


__all__ = ["SnapshotScheduler", "GuildSource"]
