#!/usr/bin/env python3
"""
Raid Warden - Entry Point
=========================

Discord raid watchdog. Detects mass channel/role deletion, mass bans
and message floods, then alerts the operator, quarantines suspects and
recreates deleted channels.

Missing required configuration is the only fatal startup error.
"""

import asyncio
import sys

from dotenv import load_dotenv

from raidwarden import __version__
from raidwarden.core.logger import logger
from raidwarden.core.config import ConfigValidationError, validate_and_log_config


async def main() -> None:
    """
    Main entry point for Raid Warden.

    1. Loads environment configuration from .env
    2. Validates required settings
    3. Starts the bot and blocks until it disconnects

    Raises:
        SystemExit: If configuration is invalid.
    """
    load_dotenv()

    logger.tree("RAID WARDEN STARTING", [
        ("Version", __version__),
        ("Commands", "/backup, /restore, /status, /quarantine, /release"),
    ], emoji="🛡️")

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.critical("Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    from raidwarden.bot import WardenBot

    bot = WardenBot()
    async with bot:
        await bot.start(config.discord_token)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")
