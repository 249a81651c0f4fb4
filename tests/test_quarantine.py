"""
Raid Warden - Quarantine Service Tests
======================================

Policy refusals, role backup ordering, nested quarantine and restore.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from raidwarden.core.database import role_backup_key
from raidwarden.core.models import ErrorKind, QuarantineReason
from raidwarden.services.quarantine import QuarantineService

from conftest import GUILD_OWNER_ID, PROTECTED_ID, http_error, make_guild, make_member, make_role


@pytest.fixture
def roles():
    return {
        "everyone": make_role(100, "@everyone", default=True),
        "mod": make_role(201, "Moderator"),
        "member": make_role(202, "Member"),
        "booster": make_role(203, "Server Booster", managed=True),
    }


@pytest.fixture
def guild(roles):
    return make_guild(roles=list(roles.values()))


@pytest.fixture
def service(test_db, config, clock):
    return QuarantineService(test_db, config, clock)


# =============================================================================
# Refusals
# =============================================================================

class TestQuarantineRefusals:
    """Policy refusals never touch roles or the store."""

    @pytest.mark.asyncio
    async def test_absent_member_refused(self, service, guild, test_db):
        outcome = await service.quarantine(guild, None, "raid")
        assert outcome.ok is False
        assert outcome.reason == QuarantineReason.MEMBER_ABSENT
        assert outcome.error_kind == ErrorKind.REFUSED_BY_POLICY
        guild.create_role.assert_not_awaited()
        assert test_db.fetchone("SELECT COUNT(*) AS n FROM snapshot_store")["n"] == 0

    @pytest.mark.asyncio
    async def test_bot_refused(self, service, guild, roles, test_db):
        member = make_member(300, [roles["mod"]], bot=True)
        outcome = await service.quarantine(guild, member, "raid")
        assert outcome.reason == QuarantineReason.BOT_ACCOUNT
        member.edit.assert_not_awaited()
        assert test_db.get(role_backup_key(guild.id, 300)) is None

    @pytest.mark.asyncio
    async def test_guild_owner_refused(self, service, guild, roles, test_db):
        member = make_member(GUILD_OWNER_ID, [roles["mod"]])
        outcome = await service.quarantine(guild, member, "raid")
        assert outcome.reason == QuarantineReason.GUILD_OWNER
        member.edit.assert_not_awaited()
        assert test_db.get(role_backup_key(guild.id, GUILD_OWNER_ID)) is None

    @pytest.mark.asyncio
    async def test_protected_member_refused(self, service, guild, roles, test_db):
        member = make_member(PROTECTED_ID, [roles["mod"]])
        outcome = await service.quarantine(guild, member, "raid")
        assert outcome.reason == QuarantineReason.PROTECTED
        assert outcome.error_kind == ErrorKind.REFUSED_BY_POLICY
        member.edit.assert_not_awaited()
        assert test_db.get(role_backup_key(guild.id, PROTECTED_ID)) is None


# =============================================================================
# Quarantine
# =============================================================================

class TestQuarantine:
    """Tests for a successful quarantine."""

    @pytest.mark.asyncio
    async def test_creates_role_and_backs_up_assignable_roles(self, service, guild, roles, test_db):
        """@everyone and managed roles are not backed up."""
        member = make_member(300, [roles["everyone"], roles["mod"], roles["member"], roles["booster"]])

        outcome = await service.quarantine(guild, member, "mass channel deletion")

        assert outcome.ok is True
        assert outcome.previous_roles == [201, 202]
        guild.create_role.assert_awaited_once()
        assert guild.create_role.await_args.kwargs["name"] == "Quarantined"
        assert test_db.get(role_backup_key(guild.id, 300))["roles"] == ["201", "202"]

    @pytest.mark.asyncio
    async def test_member_left_with_quarantine_role_and_managed_roles(self, service, guild, roles):
        member = make_member(300, [roles["mod"], roles["booster"]])

        await service.quarantine(guild, member, "raid")

        qrole = service.get_quarantine_role(guild)
        member.edit.assert_awaited_once()
        assert member.edit.await_args.kwargs["roles"] == [qrole, roles["booster"]]
        assert member.edit.await_args.kwargs["reason"] == "raid"

    @pytest.mark.asyncio
    async def test_existing_role_is_reused(self, service, guild, roles):
        qrole = make_role(400, "Quarantined")
        guild.roles.append(qrole)
        member = make_member(300, [roles["mod"]])

        await service.quarantine(guild, member, "raid")

        guild.create_role.assert_not_awaited()
        assert member.edit.await_args.kwargs["roles"] == [qrole]

    @pytest.mark.asyncio
    async def test_backup_written_before_role_replacement(self, service, guild, roles, test_db):
        """The backup is already stored when the role edit is sent."""
        member = make_member(300, [roles["mod"]])
        seen = {}

        async def edit(**kwargs):
            seen["backup"] = test_db.get(role_backup_key(guild.id, 300))

        member.edit = AsyncMock(side_effect=edit)
        await service.quarantine(guild, member, "raid")

        assert seen["backup"]["roles"] == ["201"]

    @pytest.mark.asyncio
    async def test_failed_role_replacement_keeps_backup(self, service, guild, roles, test_db):
        member = make_member(300, [roles["mod"], roles["member"]])
        member.edit = AsyncMock(side_effect=http_error(403))

        outcome = await service.quarantine(guild, member, "raid")

        assert outcome.ok is False
        assert outcome.reason == QuarantineReason.ROLE_ASSIGN_FAILED
        assert outcome.error_kind == ErrorKind.EXTERNAL_CALL_FAILED
        assert test_db.get(role_backup_key(guild.id, 300))["roles"] == ["201", "202"]

    @pytest.mark.asyncio
    async def test_role_creation_failure(self, service, guild, roles, test_db):
        guild.create_role = AsyncMock(side_effect=http_error(403))
        member = make_member(300, [roles["mod"]])

        outcome = await service.quarantine(guild, member, "raid")

        assert outcome.reason == QuarantineReason.ROLE_UNAVAILABLE
        member.edit.assert_not_awaited()
        assert test_db.get(role_backup_key(guild.id, 300)) is None

    @pytest.mark.asyncio
    async def test_backup_write_failure_leaves_roles_untouched(self, guild, roles, config, clock):
        store = MagicMock()
        store.get.return_value = None
        store.put.side_effect = TypeError("not serializable")
        service = QuarantineService(store, config, clock)
        member = make_member(300, [roles["mod"]])

        outcome = await service.quarantine(guild, member, "raid")

        assert outcome.reason == QuarantineReason.BACKUP_FAILED
        member.edit.assert_not_awaited()


class TestNestedQuarantine:
    """Re-quarantining keeps a backup only until it has been restored."""

    @pytest.mark.asyncio
    async def test_second_quarantine_keeps_first_backup(self, service, guild, roles, test_db):
        member = make_member(300, [roles["mod"], roles["member"]])
        await service.quarantine(guild, member, "first")

        # Member now only holds the quarantine role
        member.roles = [service.get_quarantine_role(guild)]
        outcome = await service.quarantine(guild, member, "second")

        assert outcome.ok is True
        assert outcome.previous_roles == [201, 202]
        assert test_db.get(role_backup_key(guild.id, 300))["roles"] == ["201", "202"]
        assert member.edit.await_count == 2

    @pytest.mark.asyncio
    async def test_quarantine_role_never_backed_up(self, service, guild, roles, test_db):
        """Holding the role without a backup records the other roles only."""
        qrole = make_role(400, "Quarantined")
        guild.roles.append(qrole)
        member = make_member(300, [qrole, roles["member"]])

        outcome = await service.quarantine(guild, member, "raid")

        assert outcome.previous_roles == [202]
        assert test_db.get(role_backup_key(guild.id, 300))["roles"] == ["202"]

    @pytest.mark.asyncio
    async def test_requarantine_after_restore_takes_fresh_backup(self, service, roles, test_db):
        """Roles gained after a restore survive the next quarantine and restore."""
        member = make_member(300, [roles["mod"]])
        guild = make_guild(roles=list(roles.values()), members=[member])

        await service.quarantine(guild, member, "first")
        qrole = service.get_quarantine_role(guild)
        member.roles = [qrole]
        await service.restore_roles(guild, 300)

        # Gains a role, later holds the quarantine role again
        member.roles = [roles["mod"], roles["member"], qrole]
        outcome = await service.quarantine(guild, member, "second")

        assert outcome.previous_roles == [201, 202]
        assert test_db.get(role_backup_key(guild.id, 300))["roles"] == ["201", "202"]

        member.roles = [qrole]
        restored = await service.restore_roles(guild, 300)

        assert restored.previous_roles == [201, 202]
        assert member.edit.await_args.kwargs["roles"] == [roles["mod"], roles["member"]]


# =============================================================================
# Restore
# =============================================================================

class TestRestoreRoles:
    """Tests for restore_roles()."""

    @pytest.mark.asyncio
    async def test_round_trip(self, service, roles):
        """Quarantine then restore reassigns exactly the backed-up roles."""
        member = make_member(300, [roles["everyone"], roles["mod"], roles["member"]])
        guild = make_guild(roles=list(roles.values()), members=[member])

        await service.quarantine(guild, member, "raid")
        member.roles = [service.get_quarantine_role(guild)]
        outcome = await service.restore_roles(guild, 300)

        assert outcome.ok is True
        assert outcome.previous_roles == [201, 202]
        assert member.edit.await_args.kwargs["roles"] == [roles["mod"], roles["member"]]

    @pytest.mark.asyncio
    async def test_backup_kept_after_restore(self, service, roles, test_db, clock):
        member = make_member(300, [roles["mod"]])
        guild = make_guild(roles=list(roles.values()), members=[member])

        await service.quarantine(guild, member, "raid")
        await service.restore_roles(guild, 300)

        stored = test_db.get(role_backup_key(guild.id, 300))
        assert stored["roles"] == ["201"]
        assert stored["restoredAt"] == clock.now

    @pytest.mark.asyncio
    async def test_no_backup(self, service, guild):
        outcome = await service.restore_roles(guild, 300)
        assert outcome.ok is False
        assert outcome.reason == QuarantineReason.NO_BACKUP
        assert outcome.error_kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_member_gone(self, service, guild, test_db):
        test_db.put(role_backup_key(guild.id, 300), {"takenAt": 1, "roles": ["201"]})

        outcome = await service.restore_roles(guild, 300)

        assert outcome.reason == QuarantineReason.MEMBER_NOT_FOUND
        assert outcome.error_kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_member_resolved_by_fetch(self, service, guild, roles, test_db):
        member = make_member(300)
        guild.fetch_member = AsyncMock(return_value=member)
        test_db.put(role_backup_key(guild.id, 300), {"takenAt": 1, "roles": ["201"]})

        outcome = await service.restore_roles(guild, 300)

        assert outcome.ok is True
        assert member.edit.await_args.kwargs["roles"] == [roles["mod"]]

    @pytest.mark.asyncio
    async def test_deleted_roles_skipped(self, service, roles, test_db):
        member = make_member(300)
        guild = make_guild(roles=list(roles.values()), members=[member])
        test_db.put(role_backup_key(guild.id, 300), {"takenAt": 1, "roles": ["201", "999"]})

        outcome = await service.restore_roles(guild, 300)

        assert outcome.ok is True
        assert member.edit.await_args.kwargs["roles"] == [roles["mod"]]

    @pytest.mark.asyncio
    async def test_restore_edit_failure(self, service, roles, test_db):
        member = make_member(300)
        member.edit = AsyncMock(side_effect=http_error(500))
        guild = make_guild(roles=list(roles.values()), members=[member])
        test_db.put(role_backup_key(guild.id, 300), {"takenAt": 1, "roles": ["201"]})

        outcome = await service.restore_roles(guild, 300)

        assert outcome.reason == QuarantineReason.RESTORE_FAILED
        assert outcome.error_kind == ErrorKind.EXTERNAL_CALL_FAILED
