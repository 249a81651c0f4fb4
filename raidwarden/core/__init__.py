"""
Raid Warden - Core Package
==========================

Logger, configuration, shared constants, result types and storage.
"""
