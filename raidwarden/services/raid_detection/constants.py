"""
Raid Warden - Raid Detection Constants
======================================

Detector names and the audit log actions used to attribute them.
"""

import discord


# =============================================================================
# Detector Names
# =============================================================================

CHANNEL_DELETE = "channel_delete"
ROLE_DELETE = "role_delete"
MEMBER_BAN = "member_ban"
MESSAGE_FLOOD = "message_flood"

DETECTOR_LABELS = {
    CHANNEL_DELETE: "Mass Channel Deletion",
    ROLE_DELETE: "Mass Role Deletion",
    MEMBER_BAN: "Mass Banning",
    MESSAGE_FLOOD: "Message Flood",
}

# =============================================================================
# Audit Log Attribution
# =============================================================================

AUDIT_ACTIONS = {
    CHANNEL_DELETE: discord.AuditLogAction.channel_delete,
    ROLE_DELETE: discord.AuditLogAction.role_delete,
    MEMBER_BAN: discord.AuditLogAction.ban,
}
