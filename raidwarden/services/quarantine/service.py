"""
Raid Warden - Quarantine Service
================================

Strips a member down to the quarantine role and restores the roles
they held before.

DESIGN:
    The member's prior roles are written to the snapshot store before
    the role replacement is sent, so a crash between the two steps still
    leaves a backup to restore from. A failed replacement leaves that
    backup in place; retrying simply overwrites it with the same set.

    @everyone and managed roles (boosts, integrations) are never backed
    up or removed: Discord does not let bots assign them, so they are
    carried through both edits unchanged.

    Every quarantine overwrites the previous backup, with one exception:
    a member who still holds the quarantine role and whose backup has not
    been restored yet keeps that backup, so a repeated quarantine cannot
    replace the real roles with the quarantine role alone. A restore marks
    the backup restored instead of deleting it.
"""

import asyncio
import sqlite3
from collections import defaultdict
from typing import Dict, List, Optional, TYPE_CHECKING

import discord

from raidwarden.core.logger import logger
from raidwarden.core.config import Config, get_config
from raidwarden.core.database import get_db, role_backup_key
from raidwarden.core.models import MemberRoleBackup, QuarantineOutcome, QuarantineReason
from raidwarden.utils.discord_rate_limit import describe_http_error, log_http_error
from raidwarden.utils.sliding_window import Clock, now_ms

if TYPE_CHECKING:
    from raidwarden.core.database import DatabaseManager


class QuarantineService:
    """
    Quarantine and role-restore operations.

    Attributes:
        store: Snapshot store holding member role backups.
        config: Quarantine role name and protected identities.
    """

    def __init__(
        self,
        store: Optional["DatabaseManager"] = None,
        config: Optional[Config] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store if store is not None else get_db()
        self.config = config if config is not None else get_config()
        self._clock: Clock = clock or now_ms

        # One role creation at a time per guild
        self._role_locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

        logger.tree("Quarantine Service Loaded", [
            ("Role Name", self.config.quarantine_role_name),
            ("Protected IDs", str(len(self.config.protected_ids))),
        ], emoji="🔒")

    # =========================================================================
    # Policy
    # =========================================================================

    def _refusal(self, guild: discord.Guild, member: Optional[discord.Member]) -> Optional[QuarantineReason]:
        """Return the refusal reason for member, or None if quarantine may proceed."""
        if member is None:
            return QuarantineReason.MEMBER_ABSENT
        if member.bot:
            return QuarantineReason.BOT_ACCOUNT
        if member.id == guild.owner_id:
            return QuarantineReason.GUILD_OWNER
        if member.id in self.config.protected_ids:
            return QuarantineReason.PROTECTED
        return None

    # =========================================================================
    # Quarantine Role
    # =========================================================================

    def get_quarantine_role(self, guild: discord.Guild) -> Optional[discord.Role]:
        """Find the quarantine role by its configured name."""
        return discord.utils.get(guild.roles, name=self.config.quarantine_role_name)

    async def ensure_quarantine_role(self, guild: discord.Guild) -> Optional[discord.Role]:
        """
        Return the quarantine role, creating it without permissions if absent.

        Returns:
            The role, or None if it could not be created.
        """
        async with self._role_locks[guild.id]:
            role = self.get_quarantine_role(guild)
            if role is not None:
                return role

            try:
                role = await guild.create_role(
                    name=self.config.quarantine_role_name,
                    permissions=discord.Permissions.none(),
                    reason="Raid Warden: quarantine role",
                )
            except discord.HTTPException as e:
                log_http_error(e, "Quarantine Role Create", [
                    ("Guild", f"{guild.name} ({guild.id})"),
                ])
                return None

            logger.tree("Quarantine Role Created", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Role", f"{role.name} ({role.id})"),
            ], emoji="🆕")
            return role

    # =========================================================================
    # Quarantine
    # =========================================================================

    async def quarantine(
        self,
        guild: discord.Guild,
        member: Optional[discord.Member],
        reason: str,
    ) -> QuarantineOutcome:
        """
        Replace a member's roles with the quarantine role.

        Args:
            guild: Guild the member belongs to.
            member: Member to quarantine; None is refused as absent.
            reason: Audit log reason for the role change.

        Returns:
            QuarantineOutcome with the backed-up roles on success.
        """
        refusal = self._refusal(guild, member)
        if refusal is not None:
            logger.tree("Quarantine Refused", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Member", str(member.id) if member is not None else "absent"),
                ("Reason", refusal.value),
            ], emoji="🛑")
            return QuarantineOutcome.refused(refusal)

        role = await self.ensure_quarantine_role(guild)
        if role is None:
            return QuarantineOutcome(
                ok=False,
                reason=QuarantineReason.ROLE_UNAVAILABLE,
                detail="Quarantine role could not be created",
            )

        key = role_backup_key(guild.id, member.id)
        already_quarantined = any(r.id == role.id for r in member.roles)
        existing = self._load_backup(key) if already_quarantined else None

        if existing is not None and not existing.is_restored:
            previous_roles = existing.roles
            logger.debug("Quarantine Backup Kept", [
                ("Member", str(member.id)),
                ("Roles", str(len(previous_roles))),
            ])
        else:
            previous_roles = [
                r.id for r in member.roles
                if not r.is_default() and not r.managed and r.id != role.id
            ]
            backup = MemberRoleBackup(taken_at=self._clock(), roles=previous_roles)
            try:
                self.store.put(key, backup.to_dict())
            except (sqlite3.Error, TypeError, ValueError) as e:
                logger.error("Role Backup Write Failed", [
                    ("Guild", str(guild.id)),
                    ("Member", str(member.id)),
                    ("Error", str(e)[:100]),
                ])
                return QuarantineOutcome(
                    ok=False,
                    reason=QuarantineReason.BACKUP_FAILED,
                    detail=str(e)[:100],
                )

        kept_managed = [r for r in member.roles if r.managed]
        try:
            await member.edit(roles=[role, *kept_managed], reason=reason)
        except discord.HTTPException as e:
            log_http_error(e, "Quarantine Role Assign", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Member", f"{member} ({member.id})"),
            ])
            return QuarantineOutcome(
                ok=False,
                reason=QuarantineReason.ROLE_ASSIGN_FAILED,
                previous_roles=previous_roles,
                detail=describe_http_error(e),
            )

        logger.tree("MEMBER QUARANTINED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Member", f"{member} ({member.id})"),
            ("Roles Backed Up", str(len(previous_roles))),
            ("Reason", reason[:50]),
        ], emoji="🔒")

        return QuarantineOutcome(
            ok=True,
            reason=QuarantineReason.OK,
            previous_roles=previous_roles,
        )

    # =========================================================================
    # Restore
    # =========================================================================

    async def restore_roles(self, guild: discord.Guild, member_id: int) -> QuarantineOutcome:
        """
        Reassign the roles saved by the member's last quarantine.

        The backup stays in the store so a retried restore applies the
        same set again.
        """
        key = role_backup_key(guild.id, member_id)
        backup = self._load_backup(key)
        if backup is None:
            logger.info("Restore Skipped (No Backup)", [
                ("Guild", str(guild.id)),
                ("Member", str(member_id)),
            ])
            return QuarantineOutcome.refused(QuarantineReason.NO_BACKUP)

        member = await self.resolve_member(guild, member_id)
        if member is None:
            return QuarantineOutcome(
                ok=False,
                reason=QuarantineReason.MEMBER_NOT_FOUND,
                previous_roles=backup.roles,
            )

        roles: List[discord.Role] = []
        skipped = 0
        for role_id in backup.roles:
            role = guild.get_role(role_id)
            if role is None:
                skipped += 1
                continue
            roles.append(role)

        kept_managed = [r for r in member.roles if r.managed and r.id not in backup.roles]
        try:
            await member.edit(roles=[*roles, *kept_managed], reason="Raid Warden: quarantine lifted")
        except discord.HTTPException as e:
            log_http_error(e, "Role Restore", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Member", f"{member} ({member.id})"),
            ])
            return QuarantineOutcome(
                ok=False,
                reason=QuarantineReason.RESTORE_FAILED,
                previous_roles=backup.roles,
                detail=describe_http_error(e),
            )

        backup.restored_at = self._clock()
        try:
            self.store.put(key, backup.to_dict())
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning("Role Backup Mark Failed", [
                ("Member", str(member_id)),
                ("Error", str(e)[:100]),
            ])

        logger.tree("ROLES RESTORED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Member", f"{member} ({member.id})"),
            ("Roles", str(len(roles))),
            ("Deleted Since Backup", str(skipped)),
        ], emoji="🔓")

        return QuarantineOutcome(
            ok=True,
            reason=QuarantineReason.OK,
            previous_roles=backup.roles,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _load_backup(self, key: str) -> Optional[MemberRoleBackup]:
        data = self.store.get(key)
        if data is None:
            return None
        try:
            return MemberRoleBackup.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Role Backup Unreadable", [
                ("Key", key),
                ("Error", str(e)[:100]),
            ])
            return None

    async def resolve_member(self, guild: discord.Guild, member_id: int) -> Optional[discord.Member]:
        """Cached member, else fetched; None if gone or the fetch failed."""
        member = guild.get_member(member_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(member_id)
        except discord.NotFound:
            return None
        except discord.HTTPException as e:
            log_http_error(e, "Member Fetch", [
                ("Guild", str(guild.id)),
                ("Member", str(member_id)),
            ])
            return None


__all__ = ["QuarantineService"]
