"""
Raid Warden - Test Fixtures
===========================

Shared fixtures for all tests.
"""

import os
import sys
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set up test environment before importing modules
os.environ.setdefault("DISCORD_TOKEN", "test-token")
os.environ.setdefault("OWNER_ID", "999")
os.environ.setdefault("WARDEN_LOGS_DIR", tempfile.mkdtemp(prefix="warden-logs-"))

import discord  # noqa: E402

from raidwarden.core.config import Config  # noqa: E402
from raidwarden.core.database import DatabaseManager  # noqa: E402


OWNER_ID = 999
GUILD_OWNER_ID = 1
PROTECTED_ID = 7
BOT_USER_ID = 4242
GUILD_ID = 100


# =============================================================================
# Fake Clock
# =============================================================================

class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


# =============================================================================
# Async Helpers
# =============================================================================

class AsyncIter:
    """Async iterator over a fixed list, optionally raising partway through."""

    def __init__(self, items: Iterable = (), error: Optional[BaseException] = None) -> None:
        self._items = list(items)
        self._error = error

    def __aiter__(self):
        self._iter = iter(self._items)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            if self._error is not None:
                raise self._error
            raise StopAsyncIteration


def http_error(status: int = 500, cls=discord.HTTPException, text: str = "boom"):
    """Build a discord.py HTTP error without a real response."""
    response = MagicMock()
    response.status = status
    response.reason = text
    return cls(response, text)


# =============================================================================
# Discord Object Builders
# =============================================================================

def make_role(role_id: int, name: str = "", managed: bool = False, default: bool = False) -> MagicMock:
    role = MagicMock()
    role.id = role_id
    role.name = name or f"role-{role_id}"
    role.managed = managed
    role.is_default = MagicMock(return_value=default)
    return role


def make_member(member_id: int, roles: Optional[List[MagicMock]] = None, bot: bool = False) -> MagicMock:
    member = MagicMock()
    member.id = member_id
    member.bot = bot
    member.roles = list(roles or [])
    member.mention = f"<@{member_id}>"
    member.edit = AsyncMock()
    return member


def make_channel(channel_id: int, name: str, kind: str = "text") -> MagicMock:
    channel = MagicMock()
    channel.id = channel_id
    channel.name = name
    channel.type = discord.ChannelType[kind]
    channel.category_id = None
    channel.position = 0
    channel.overwrites = {}
    channel.send = AsyncMock()
    return channel


def make_guild(
    guild_id: int = GUILD_ID,
    roles: Optional[List[MagicMock]] = None,
    channels: Optional[List[MagicMock]] = None,
    members: Optional[List[MagicMock]] = None,
) -> MagicMock:
    """
    Guild double backed by plain lists.

    create_role appends to roles; channel creators append a new channel
    of the matching kind, so reconcile can be observed through channels.
    """
    guild = MagicMock()
    guild.id = guild_id
    guild.name = "Test Guild"
    guild.owner_id = GUILD_OWNER_ID
    guild.roles = list(roles or [make_role(guild_id, "@everyone", default=True)])
    guild.channels = list(channels or [])
    members = list(members or [])

    guild.get_role = MagicMock(side_effect=lambda rid: next((r for r in guild.roles if r.id == rid), None))
    guild.get_member = MagicMock(side_effect=lambda mid: next((m for m in members if m.id == mid), None))
    guild.fetch_member = AsyncMock(side_effect=http_error(404, discord.NotFound, "Unknown Member"))

    async def create_role(name, **kwargs):
        role = make_role(5000 + len(guild.roles), name)
        guild.roles.append(role)
        return role

    guild.create_role = AsyncMock(side_effect=create_role)

    def creator(kind):
        async def create(name, **kwargs):
            if kwargs.get("news"):
                channel = make_channel(8000 + len(guild.channels), name, "news")
            else:
                channel = make_channel(8000 + len(guild.channels), name, kind)
            guild.channels.append(channel)
            return channel
        return AsyncMock(side_effect=create)

    guild.create_text_channel = creator("text")
    guild.create_voice_channel = creator("voice")
    guild.create_category = creator("category")
    guild.create_stage_channel = creator("stage_voice")
    guild.create_forum = creator("forum")

    type(guild).text_channels = property(
        lambda self: [c for c in self.channels if c.type == discord.ChannelType.text]
    )

    guild.audit_logs = MagicMock(return_value=AsyncIter())
    return guild


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    """Fake millisecond clock."""
    return FakeClock()


@pytest.fixture
def config():
    """Config with default thresholds and one protected user."""
    return Config(
        discord_token="test-token",
        owner_id=OWNER_ID,
        protected_ids={PROTECTED_ID},
    )


@pytest.fixture
def test_db(tmp_path):
    """Fresh SQLite store in a temporary directory."""
    DatabaseManager._instance = None
    db = DatabaseManager(tmp_path / "test.db")
    yield db
    db.close()
    DatabaseManager._instance = None


@pytest.fixture
def mock_bot():
    """Client double with a bot user and an operator to DM."""
    bot = MagicMock()
    bot.user = MagicMock()
    bot.user.id = BOT_USER_ID
    operator = MagicMock()
    operator.id = OWNER_ID
    operator.send = AsyncMock()
    bot.get_user = MagicMock(return_value=operator)
    bot.fetch_user = AsyncMock(return_value=operator)
    bot.operator = operator
    return bot
