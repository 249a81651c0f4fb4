"""
Raid Warden - Raid Detection Package
====================================

Sliding-window detectors for channel deletes, role deletes, bans and
per-author message floods.
"""

from raidwarden.services.raid_detection.attribution import gather_suspects
from raidwarden.services.raid_detection.detectors import MessageFloodDetector, RaidDetector
from raidwarden.services.raid_detection.service import RaidDetectionService

__all__ = [
    "RaidDetectionService",
    "RaidDetector",
    "MessageFloodDetector",
    "gather_suspects",
]
