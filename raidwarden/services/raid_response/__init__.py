"""
Raid Warden - Raid Response Package
===================================

Raid response orchestration and alert formatting.
"""

from raidwarden.services.raid_response.service import (
    RaidResponseService,
    STEP_ALERT,
    STEP_OPERATOR_DM,
    STEP_QUARANTINE,
    STEP_RECONCILE,
)

__all__ = [
    "RaidResponseService",
    "STEP_ALERT",
    "STEP_OPERATOR_DM",
    "STEP_QUARANTINE",
    "STEP_RECONCILE",
]
