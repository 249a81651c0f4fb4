"""
Raid Warden - Actor Attribution
===============================

Collects the users behind recent audit log entries of one action type.

DESIGN:
    Attribution is best effort. Entries older than twice the detection
    window are ignored, the bot's own actions are skipped, and ids are
    deduplicated in the order the audit log returns them (newest first).
    Missing View Audit Log permission or an API error yields no suspects
    rather than an exception; the raid response then alerts with
    "unknown" actors.
"""

from datetime import datetime, timedelta
from typing import List, Optional

import discord

from raidwarden.core.logger import logger
from raidwarden.core.constants import (
    ATTRIBUTION_WINDOW_FACTOR,
    AUDIT_LOG_FETCH_LIMIT,
    MAX_SUSPECTS,
)
from raidwarden.utils.discord_rate_limit import log_http_error


async def gather_suspects(
    guild: discord.Guild,
    action: discord.AuditLogAction,
    window_ms: int,
    bot_id: Optional[int],
    now: Optional[datetime] = None,
) -> List[int]:
    """
    Return up to MAX_SUSPECTS user ids behind recent `action` entries.

    Args:
        guild: Guild whose audit log is read.
        action: Audit log action to filter on.
        window_ms: Detection window; entries older than twice this are skipped.
        bot_id: The bot's own user id, never returned as a suspect.
        now: Reference time (aware UTC), defaults to the current time.
    """
    cutoff = (now or discord.utils.utcnow()) - timedelta(
        milliseconds=window_ms * ATTRIBUTION_WINDOW_FACTOR
    )
    suspects: List[int] = []

    try:
        async for entry in guild.audit_logs(limit=AUDIT_LOG_FETCH_LIMIT, action=action):
            if entry.created_at < cutoff:
                continue
            if entry.user is None:
                continue

            user_id = entry.user.id
            if user_id == bot_id or user_id in suspects:
                continue

            suspects.append(user_id)
            if len(suspects) >= MAX_SUSPECTS:
                break

    except discord.Forbidden:
        logger.warning("Audit Log Unavailable", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Action", action.name),
            ("Reason", "Missing View Audit Log permission"),
        ])
        return []
    except discord.HTTPException as e:
        log_http_error(e, "Audit Log Fetch", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Action", action.name),
        ])
        return []

    logger.debug("Suspects Gathered", [
        ("Guild", str(guild.id)),
        ("Action", action.name),
        ("Suspects", ", ".join(str(s) for s in suspects) or "None"),
    ])
    return suspects


__all__ = ["gather_suspects"]
