"""
Raid Warden - Services Package
==============================

Detection and response services:

    quarantine      - strip a member to the quarantine role, restore later
    guild_backup    - channel snapshots, reconciliation, periodic sweep
    raid_detection  - sliding-window detectors bound to guild events
    raid_response   - alert, quarantine suspects, reconcile channels
"""
