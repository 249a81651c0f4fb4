"""
Raid Warden - Utilities Package
===============================

Sliding-window counter and Discord helper functions.
"""
