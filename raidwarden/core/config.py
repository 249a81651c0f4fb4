"""
Raid Warden - Configuration Module
==================================

Centralized configuration loaded from environment variables.

DESIGN:
    One Config dataclass is built at startup and shared through
    get_config(). Only the bot token and operator identity are
    required; every detector knob has a default so a bare deployment
    still protects the guild.

    Key patterns:
    - Singleton via get_config()
    - Validation once at load time, fail fast on missing required values
    - Out-of-range integers clamp with a logged warning
    - Permission helpers centralize who may run operator commands
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Set

from raidwarden.core.constants import MS_PER_SECOND
from raidwarden.core.logger import NY_TZ


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token.
        owner_id: User ID of the operator who receives raid DMs.
        guild_id: Guild the bot protects. None protects every guild it is in.
        auto_quarantine: Whether suspected actors are quarantined automatically.
        quarantine_role_name: Name of the restricted role.
        protected_ids: User IDs that are never quarantined.
    """

    # -------------------------------------------------------------------------
    # Required
    # -------------------------------------------------------------------------

    discord_token: str
    owner_id: int

    # -------------------------------------------------------------------------
    # Optional: Scope
    # -------------------------------------------------------------------------

    guild_id: Optional[int] = None

    # -------------------------------------------------------------------------
    # Optional: Quarantine
    # -------------------------------------------------------------------------

    auto_quarantine: bool = True
    quarantine_role_name: str = "Quarantined"
    protected_ids: Set[int] = field(default_factory=set)

    # -------------------------------------------------------------------------
    # Optional: Detection Thresholds
    # -------------------------------------------------------------------------

    channel_delete_threshold: int = 3
    role_delete_threshold: int = 3
    ban_threshold: int = 5
    message_flood_threshold: int = 25
    raid_window_seconds: int = 10

    # -------------------------------------------------------------------------
    # Optional: Alerts & Backups
    # -------------------------------------------------------------------------

    alert_channel_name: str = "raid-alerts"
    snapshot_interval_seconds: int = 300
    database_path: str = "data/warden.db"

    # -------------------------------------------------------------------------
    # Optional: Webhooks
    # -------------------------------------------------------------------------

    error_webhook_url: Optional[str] = None

    @property
    def raid_window_ms(self) -> int:
        """Detector window in milliseconds."""
        return self.raid_window_seconds * MS_PER_SECOND


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Color palette for alert embeds."""

    RED = 0xDC3545      # Raid detected, failures
    GOLD = 0xE6B84A     # Partial results, warnings
    GREEN = 0x1F5E2E    # Successful restore/backup
    BLUE = 0x3498DB     # Informational

    ALERT = RED
    WARNING = GOLD
    SUCCESS = GREEN
    INFO = BLUE


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _parse_int(value: Optional[str], name: str) -> int:
    """
    Parse a required integer.

    Raises:
        ConfigValidationError: If value is missing or not a valid integer.
    """
    if not value:
        raise ConfigValidationError(f"Missing required: {name}")
    try:
        return int(value)
    except ValueError:
        raise ConfigValidationError(f"Invalid integer for {name}: {value}")


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_set(value: Optional[str]) -> Set[int]:
    """Parse a comma-separated list of integers, skipping invalid entries."""
    if not value:
        return set()
    result = set()
    for part in value.split(","):
        part = part.strip()
        if part:
            try:
                result.add(int(part))
            except ValueError:
                pass
    return result


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse optional integer with default and range validation.

    Returns:
        Parsed integer clamped to [min_val, max_val], or default when
        missing or unparseable.
    """
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        from raidwarden.core.logger import logger
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default

    if min_val is not None and parsed < min_val:
        from raidwarden.core.logger import logger
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        from raidwarden.core.logger import logger
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from raidwarden.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object.

    Raises:
        ConfigValidationError: If a required variable is missing or invalid.
    """
    missing = []

    discord_token = os.getenv("DISCORD_TOKEN")
    if not discord_token:
        missing.append("DISCORD_TOKEN")

    owner_id_str = os.getenv("OWNER_ID")
    if not owner_id_str:
        missing.append("OWNER_ID")

    if missing:
        raise ConfigValidationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    return Config(
        discord_token=discord_token,
        owner_id=_parse_int(owner_id_str, "OWNER_ID"),
        guild_id=_parse_int_optional(os.getenv("GUILD_ID")),
        auto_quarantine=_parse_bool(os.getenv("AUTO_QUARANTINE"), True),
        quarantine_role_name=os.getenv("QUARANTINE_ROLE_NAME") or "Quarantined",
        protected_ids=_parse_int_set(os.getenv("PROTECTED_IDS")),
        channel_delete_threshold=_parse_int_with_default(
            os.getenv("CHANNEL_DELETE_THRESHOLD"), 3, "CHANNEL_DELETE_THRESHOLD", min_val=1, max_val=100
        ),
        role_delete_threshold=_parse_int_with_default(
            os.getenv("ROLE_DELETE_THRESHOLD"), 3, "ROLE_DELETE_THRESHOLD", min_val=1, max_val=100
        ),
        ban_threshold=_parse_int_with_default(
            os.getenv("BAN_THRESHOLD"), 5, "BAN_THRESHOLD", min_val=1, max_val=100
        ),
        message_flood_threshold=_parse_int_with_default(
            os.getenv("MESSAGE_FLOOD_THRESHOLD"), 25, "MESSAGE_FLOOD_THRESHOLD", min_val=2, max_val=500
        ),
        raid_window_seconds=_parse_int_with_default(
            os.getenv("RAID_WINDOW_SECONDS"), 10, "RAID_WINDOW_SECONDS", min_val=1, max_val=3600
        ),
        alert_channel_name=os.getenv("ALERT_CHANNEL_NAME") or "raid-alerts",
        snapshot_interval_seconds=_parse_int_with_default(
            os.getenv("SNAPSHOT_INTERVAL_SECONDS"), 300, "SNAPSHOT_INTERVAL_SECONDS", min_val=30, max_val=86400
        ),
        database_path=os.getenv("DATABASE_PATH") or "data/warden.db",
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading it on first use.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> Config:
    """
    Validate configuration once at startup and log a summary.

    Raises:
        ConfigValidationError: If required configuration is missing.
    """
    from raidwarden.core.logger import logger

    config = get_config()

    logger.tree("Configuration Validated", [
        ("Operator", str(config.owner_id)),
        ("Scope", str(config.guild_id) if config.guild_id else "All guilds"),
        ("Auto-Quarantine", "Enabled" if config.auto_quarantine else "Disabled"),
        ("Quarantine Role", config.quarantine_role_name),
        ("Protected IDs", str(len(config.protected_ids))),
        ("Thresholds", (
            f"channels {config.channel_delete_threshold}, roles {config.role_delete_threshold}, "
            f"bans {config.ban_threshold}, flood {config.message_flood_threshold}"
        )),
        ("Window", f"{config.raid_window_seconds}s"),
        ("Snapshot Interval", f"{config.snapshot_interval_seconds}s"),
    ], emoji="⚙️")

    return config


# =============================================================================
# Permission Helpers
# =============================================================================

def is_owner(user_id: int) -> bool:
    """Check if user is the configured operator."""
    return user_id == get_config().owner_id


def is_guild_admin(member) -> bool:
    """
    Check if a member may run owner/admin commands.

    True for the operator, the guild owner and anyone holding the
    administrator permission.
    """
    if member is None:
        return False

    if is_owner(member.id):
        return True

    guild = getattr(member, "guild", None)
    if guild is not None and guild.owner_id == member.id:
        return True

    permissions = getattr(member, "guild_permissions", None)
    return bool(permissions and permissions.administrator)


__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "get_config",
    "load_config",
    "validate_and_log_config",
    "is_owner",
    "is_guild_admin",
]
