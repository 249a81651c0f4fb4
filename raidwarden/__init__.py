"""
Raid Warden
===========

Anti-raid watchdog for Discord guilds: sliding-window detectors,
member quarantine with role backups and channel snapshot reconciliation.
"""

__version__ = "1.0.0"
