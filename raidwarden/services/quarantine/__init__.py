"""
Raid Warden - Quarantine Package
================================

Quarantine role assignment and role restoration.
"""

from raidwarden.services.quarantine.service import QuarantineService

__all__ = ["QuarantineService"]
