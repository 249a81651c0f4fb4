"""
Raid Warden - Events Package
============================

Event handler Cogs.

DESIGN:
    Each event file contains a Cog class with @commands.Cog.listener decorators.
    Cogs are loaded by the bot using load_extension().

    Event routing:
    - guard.py: channel delete, role delete, member ban, message create
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "raidwarden.events.guard",
]
"""Event cog module paths, loaded in order by the bot."""


__all__ = ["EVENT_COGS"]
