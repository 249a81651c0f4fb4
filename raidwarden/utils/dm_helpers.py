"""
Raid Warden - DM Helper Utilities
=================================

Best-effort direct messages to the operator.

Usage:
    from raidwarden.utils.dm_helpers import safe_send_dm

    delivered = await safe_send_dm(user, embed=alert_embed, context="Raid Alert DM")
"""

from typing import Optional, Union

import discord

from raidwarden.core.logger import logger
from raidwarden.utils.discord_rate_limit import log_http_error


async def safe_send_dm(
    user: Union[discord.User, discord.Member],
    embed: Optional[discord.Embed] = None,
    content: Optional[str] = None,
    context: Optional[str] = None,
) -> bool:
    """
    Send a DM without ever raising.

    Args:
        user: Recipient.
        embed: Optional embed to send.
        content: Optional text content.
        context: Label for log entries (e.g., "Raid Alert DM").

    Returns:
        True if the DM was delivered, False otherwise.
    """
    try:
        await user.send(content=content, embed=embed)
        return True
    except discord.Forbidden:
        # DMs closed on the recipient side
        logger.debug("DM Blocked", [("Context", context or "N/A"), ("User", str(user))])
        return False
    except discord.HTTPException as e:
        log_http_error(e, "DM Send", [("User", str(user)), ("Context", context or "N/A")])
        return False
    except Exception as e:
        logger.warning("DM Send Failed", [
            ("User", str(user)),
            ("Context", context or "N/A"),
            ("Error", str(e)[:100]),
            ("Type", type(e).__name__),
        ])
        return False


__all__ = ["safe_send_dm"]
