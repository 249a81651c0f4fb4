"""
Raid Warden - Discord HTTP Error Logging
========================================

Shared logging for discord.HTTPException so every failed platform call
is reported with the same fields.
"""

from typing import Optional

import discord

from raidwarden.core.logger import logger


# HTTP status code descriptions for logging
HTTP_STATUS_DESCRIPTIONS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    429: "Rate Limited",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def describe_http_error(e: discord.HTTPException) -> str:
    """Short human-readable form of an HTTPException for alert text."""
    status = getattr(e, "status", None)
    status_desc = HTTP_STATUS_DESCRIPTIONS.get(status, "Error")
    text = getattr(e, "text", None) or str(e)
    return f"{status} {status_desc}: {text[:100]}" if status else text[:100]


def log_http_error(
    e: discord.HTTPException,
    operation: str,
    context: Optional[list] = None,
) -> None:
    """
    Log a Discord HTTPException with status, text and retry hint.

    Args:
        e: The HTTPException that occurred.
        operation: Description of what operation failed.
        context: Additional (key, value) tuples for the log entry.
    """
    status = getattr(e, "status", None)
    status_desc = HTTP_STATUS_DESCRIPTIONS.get(status, "Unknown")
    retry_after = getattr(e, "retry_after", None)

    log_items = [
        ("Status", f"{status} ({status_desc})"),
        ("Error", str(e.text) if getattr(e, "text", None) else str(e)),
    ]

    if retry_after:
        log_items.append(("Retry After", f"{retry_after:.1f}s"))

    if context:
        log_items.extend(context)

    # Rate limits, permissions and missing objects are recoverable
    if status == 429:
        logger.warning(f"🚦 {operation} Rate Limited", log_items)
    elif status == 403:
        logger.warning(f"🚫 {operation} Forbidden", log_items)
    elif status == 404:
        logger.warning(f"❓ {operation} Not Found", log_items)
    else:
        logger.error(f"❌ {operation} Failed", log_items)


__all__ = [
    "HTTP_STATUS_DESCRIPTIONS",
    "describe_http_error",
    "log_http_error",
]
