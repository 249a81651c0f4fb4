"""
Raid Warden - Commands Package
==============================

Slash command Cogs.

DESIGN:
    Each command file contains a Cog class with related commands and an
    async setup(bot) function. The bot loads every module listed in
    COMMAND_COGS with load_extension().

Available Commands:
    /backup: Snapshot this server's channels now (admin)
    /restore: Recreate channels missing since the last snapshot (admin)
    /status: Detector counts and quarantine settings
    /quarantine: Quarantine a member manually (admin)
    /release: Restore a quarantined member's roles (admin)
"""

# =============================================================================
# Command Cog Registry
# =============================================================================

COMMAND_COGS = [
    "raidwarden.commands.backup",
    "raidwarden.commands.status",
    "raidwarden.commands.members",
]
"""Command cog module paths, loaded in order by the bot."""


__all__ = ["COMMAND_COGS"]
