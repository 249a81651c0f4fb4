"""
Raid Warden - Configuration Tests
=================================

Tests for environment parsing, defaults and permission helpers.
"""

from unittest.mock import MagicMock

import pytest

from raidwarden.core import config as config_module
from raidwarden.core.config import ConfigValidationError, is_guild_admin, is_owner, load_config

from conftest import GUILD_OWNER_ID, OWNER_ID


OPTIONAL_VARS = [
    "GUILD_ID", "AUTO_QUARANTINE", "QUARANTINE_ROLE_NAME", "PROTECTED_IDS",
    "CHANNEL_DELETE_THRESHOLD", "ROLE_DELETE_THRESHOLD", "BAN_THRESHOLD",
    "MESSAGE_FLOOD_THRESHOLD", "RAID_WINDOW_SECONDS", "ALERT_CHANNEL_NAME",
    "SNAPSHOT_INTERVAL_SECONDS", "ERROR_WEBHOOK_URL", "DATABASE_PATH",
]


@pytest.fixture
def env(monkeypatch):
    """Minimal valid environment with every optional variable unset."""
    monkeypatch.setenv("DISCORD_TOKEN", "token")
    monkeypatch.setenv("OWNER_ID", str(OWNER_ID))
    for name in OPTIONAL_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfigRequired:
    """Tests for required variables."""

    def test_missing_token_is_fatal(self, env):
        env.delenv("DISCORD_TOKEN")
        with pytest.raises(ConfigValidationError, match="DISCORD_TOKEN"):
            load_config()

    def test_missing_owner_is_fatal(self, env):
        env.delenv("OWNER_ID")
        with pytest.raises(ConfigValidationError, match="OWNER_ID"):
            load_config()

    def test_non_numeric_owner_is_fatal(self, env):
        env.setenv("OWNER_ID", "someone")
        with pytest.raises(ConfigValidationError):
            load_config()


class TestLoadConfigDefaults:
    """Tests for optional variables and their defaults."""

    def test_defaults(self, env):
        """A bare environment still yields working detector settings."""
        cfg = load_config()
        assert cfg.owner_id == OWNER_ID
        assert cfg.guild_id is None
        assert cfg.auto_quarantine is True
        assert cfg.quarantine_role_name == "Quarantined"
        assert cfg.protected_ids == set()
        assert cfg.message_flood_threshold == 25
        assert cfg.raid_window_ms == 10_000
        assert cfg.alert_channel_name == "raid-alerts"
        assert cfg.snapshot_interval_seconds == 300

    def test_protected_ids_parsed(self, env):
        """Comma-separated ids are parsed and junk entries skipped."""
        env.setenv("PROTECTED_IDS", "5, 6,abc,,7")
        assert load_config().protected_ids == {5, 6, 7}

    def test_auto_quarantine_can_be_disabled(self, env):
        env.setenv("AUTO_QUARANTINE", "false")
        assert load_config().auto_quarantine is False

    def test_out_of_range_threshold_is_clamped(self, env):
        """Values below the minimum fall back to the minimum."""
        env.setenv("BAN_THRESHOLD", "0")
        assert load_config().ban_threshold == 1

    def test_invalid_threshold_uses_default(self, env):
        env.setenv("CHANNEL_DELETE_THRESHOLD", "lots")
        assert load_config().channel_delete_threshold == 3

    def test_invalid_webhook_url_ignored(self, env):
        env.setenv("ERROR_WEBHOOK_URL", "not-a-url")
        assert load_config().error_webhook_url is None


class TestPermissionHelpers:
    """Tests for is_owner() and is_guild_admin()."""

    @pytest.fixture(autouse=True)
    def _config(self, monkeypatch, config):
        monkeypatch.setattr(config_module, "_config", config)

    def _member(self, member_id, administrator=False):
        member = MagicMock()
        member.id = member_id
        member.guild.owner_id = GUILD_OWNER_ID
        member.guild_permissions.administrator = administrator
        return member

    def test_operator_is_owner(self):
        assert is_owner(OWNER_ID) is True
        assert is_owner(OWNER_ID + 1) is False

    def test_operator_is_admin(self):
        assert is_guild_admin(self._member(OWNER_ID)) is True

    def test_guild_owner_is_admin(self):
        assert is_guild_admin(self._member(GUILD_OWNER_ID)) is True

    def test_administrator_permission_is_admin(self):
        assert is_guild_admin(self._member(50, administrator=True)) is True

    def test_regular_member_is_not_admin(self):
        assert is_guild_admin(self._member(50)) is False

    def test_none_is_not_admin(self):
        assert is_guild_admin(None) is False
