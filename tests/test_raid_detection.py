"""
Raid Warden - Raid Detection Tests
==================================

Detector thresholds, per-author flood isolation, audit log attribution
and the event entry points.
"""

from dataclasses import replace
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from raidwarden.services.raid_detection import (
    MessageFloodDetector,
    RaidDetectionService,
    RaidDetector,
    gather_suspects,
)
from raidwarden.services.raid_detection.constants import CHANNEL_DELETE, MEMBER_BAN, MESSAGE_FLOOD

from conftest import BOT_USER_ID, AsyncIter, http_error, make_channel, make_guild, make_member


WINDOW = 10_000


def audit_entry(user_id, age_seconds=1.0):
    entry = MagicMock()
    entry.user = MagicMock()
    entry.user.id = user_id
    entry.created_at = discord.utils.utcnow() - timedelta(seconds=age_seconds)
    return entry


def make_message(guild, author_id, webhook_id=None):
    message = MagicMock()
    message.guild = guild
    message.author = make_member(author_id)
    message.webhook_id = webhook_id
    return message


# =============================================================================
# Detectors
# =============================================================================

class TestRaidDetector:
    """Tests for the threshold detector."""

    def test_triggers_at_threshold(self, clock):
        detector = RaidDetector(CHANNEL_DELETE, 3, WINDOW, clock)
        assert detector.observe() is None
        assert detector.observe() is None
        assert detector.observe() == 3

    def test_counter_reset_after_trigger(self, clock):
        detector = RaidDetector(CHANNEL_DELETE, 3, WINDOW, clock)
        for _ in range(3):
            detector.observe()
        assert detector.count() == 0

    def test_needs_fresh_accumulation_to_trigger_again(self, clock):
        """Events after a trigger start counting from zero."""
        detector = RaidDetector(CHANNEL_DELETE, 3, WINDOW, clock)
        results = [detector.observe() for _ in range(6)]
        assert results == [None, None, 3, None, None, 3]

    def test_events_outside_window_do_not_accumulate(self, clock):
        detector = RaidDetector(CHANNEL_DELETE, 3, WINDOW, clock)
        detector.observe()
        detector.observe()
        clock.advance(WINDOW)
        assert detector.observe() is None
        assert detector.count() == 1

    def test_threshold_must_be_positive(self):
        with pytest.raises(ValueError):
            RaidDetector(CHANNEL_DELETE, 0, WINDOW)


class TestMessageFloodDetector:
    """Tests for per (guild, author) flood counting."""

    def test_per_author_isolation(self, clock):
        """25 messages from A and 24 from B trigger only for A."""
        detector = MessageFloodDetector(MESSAGE_FLOOD, 25, WINDOW, clock)
        triggers = []
        for i in range(25):
            if detector.observe(1, 501) is not None:
                triggers.append(501)
            if i < 24 and detector.observe(1, 502) is not None:
                triggers.append(502)

        assert triggers == [501]
        assert detector.count(1, 501) == 0
        assert detector.count(1, 502) == 24

    def test_same_author_in_different_guilds_is_separate(self, clock):
        detector = MessageFloodDetector(MESSAGE_FLOOD, 3, WINDOW, clock)
        detector.observe(1, 501)
        detector.observe(1, 501)
        assert detector.observe(2, 501) is None
        assert detector.observe(1, 501) == 3

    def test_prune_idle_drops_empty_windows(self, clock):
        detector = MessageFloodDetector(MESSAGE_FLOOD, 25, WINDOW, clock)
        detector.observe(1, 501)
        clock.advance(WINDOW // 2)
        detector.observe(1, 502)
        clock.advance(WINDOW // 2)

        assert detector.prune_idle() == 1
        assert detector.tracked_pairs == 1

    def test_idle_sweep_runs_periodically(self, clock):
        detector = MessageFloodDetector(MESSAGE_FLOOD, 25, WINDOW, clock, prune_interval=3)
        detector.observe(1, 501)
        clock.advance(WINDOW)
        detector.observe(1, 502)
        detector.observe(1, 503)

        assert detector.tracked_pairs == 2


# =============================================================================
# Attribution
# =============================================================================

class TestGatherSuspects:
    """Tests for audit log attribution."""

    @pytest.mark.asyncio
    async def test_collects_recent_actors(self):
        guild = make_guild()
        guild.audit_logs = MagicMock(return_value=AsyncIter([audit_entry(11), audit_entry(12)]))

        suspects = await gather_suspects(guild, discord.AuditLogAction.channel_delete, WINDOW, BOT_USER_ID)

        assert suspects == [11, 12]
        assert guild.audit_logs.call_args.kwargs["action"] == discord.AuditLogAction.channel_delete

    @pytest.mark.asyncio
    async def test_skips_bot_duplicates_and_stale_entries(self):
        guild = make_guild()
        guild.audit_logs = MagicMock(return_value=AsyncIter([
            audit_entry(11),
            audit_entry(BOT_USER_ID),
            audit_entry(11),
            audit_entry(12, age_seconds=60),
            audit_entry(13, age_seconds=15),
        ]))

        suspects = await gather_suspects(guild, discord.AuditLogAction.ban, WINDOW, BOT_USER_ID)

        assert suspects == [11, 13]

    @pytest.mark.asyncio
    async def test_caps_at_six(self):
        guild = make_guild()
        guild.audit_logs = MagicMock(return_value=AsyncIter([audit_entry(i) for i in range(20, 30)]))

        suspects = await gather_suspects(guild, discord.AuditLogAction.ban, WINDOW, BOT_USER_ID)

        assert suspects == [20, 21, 22, 23, 24, 25]

    @pytest.mark.asyncio
    async def test_forbidden_yields_no_suspects(self):
        guild = make_guild()
        guild.audit_logs = MagicMock(return_value=AsyncIter(
            [audit_entry(11)], error=http_error(403, discord.Forbidden),
        ))

        assert await gather_suspects(guild, discord.AuditLogAction.ban, WINDOW, BOT_USER_ID) == []

    @pytest.mark.asyncio
    async def test_http_error_yields_no_suspects(self):
        guild = make_guild()
        guild.audit_logs = MagicMock(return_value=AsyncIter(error=http_error(500)))

        assert await gather_suspects(guild, discord.AuditLogAction.ban, WINDOW, BOT_USER_ID) == []


# =============================================================================
# Detection Service
# =============================================================================

@pytest.fixture
def response():
    resp = MagicMock()
    resp.handle_raid = AsyncMock(return_value=[])
    return resp


@pytest.fixture
def detection(mock_bot, response, config, clock):
    return RaidDetectionService(mock_bot, response, replace(config, channel_delete_threshold=5), clock)


class TestRaidDetectionService:
    """Tests for the event entry points."""

    @pytest.mark.asyncio
    async def test_five_channel_deletes_trigger_once(self, detection, response):
        """Threshold 5: the fifth delete fires, a sixth starts a new accumulation."""
        guild = make_guild()
        fired = []
        for i in range(5):
            channel = make_channel(i, f"c{i}")
            channel.guild = guild
            fired.append(await detection.on_channel_delete(channel))

        assert fired == [False, False, False, False, True]
        assert response.handle_raid.await_count == 1

    @pytest.mark.asyncio
    async def test_raid_handed_to_response_with_suspects(self, detection, response):
        guild = make_guild()
        guild.audit_logs = MagicMock(return_value=AsyncIter([audit_entry(11)]))

        for i in range(5):
            channel = make_channel(i, f"c{i}")
            channel.guild = guild
            await detection.on_channel_delete(channel)

        response.handle_raid.assert_awaited_once()
        args, kwargs = response.handle_raid.await_args
        assert args[0] is guild
        assert args[2] == [11]
        assert kwargs["detector"] == CHANNEL_DELETE
        assert detection.detectors[CHANNEL_DELETE].count() == 0

        channel = make_channel(6, "c6")
        channel.guild = guild
        assert await detection.on_channel_delete(channel) is False
        assert response.handle_raid.await_count == 1
        assert detection.detectors[CHANNEL_DELETE].count() == 1

    @pytest.mark.asyncio
    async def test_ban_detector_uses_ban_threshold(self, detection, response):
        guild = make_guild()
        user = make_member(50)

        fired = [await detection.on_ban(guild, user) for _ in range(5)]

        assert fired[-1] is True
        assert response.handle_raid.await_args.kwargs["detector"] == MEMBER_BAN

    @pytest.mark.asyncio
    async def test_message_flood_suspect_is_author(self, detection, response):
        guild = make_guild()

        for _ in range(25):
            await detection.on_message(make_message(guild, 501))
        for _ in range(24):
            await detection.on_message(make_message(guild, 502))

        response.handle_raid.assert_awaited_once()
        assert response.handle_raid.await_args.args[2] == [501]
        guild.audit_logs.assert_not_called()

    @pytest.mark.asyncio
    async def test_ignores_own_webhook_and_direct_messages(self, detection, response):
        guild = make_guild()
        for _ in range(30):
            await detection.on_message(make_message(guild, BOT_USER_ID))
            await detection.on_message(make_message(guild, 501, webhook_id=77))
            await detection.on_message(make_message(None, 502))

        response.handle_raid.assert_not_awaited()
        assert detection.flood.tracked_pairs == 0

    def test_status_reports_counts(self, detection):
        status = detection.status()
        assert status[CHANNEL_DELETE] == {"count": 0, "threshold": 5}
        assert status[MESSAGE_FLOOD]["threshold"] == 25
        assert status[MESSAGE_FLOOD]["tracked_pairs"] == 0
