"""
Raid Warden - Centralized Constants
===================================

Magic numbers shared across services. Tunables that operators may want
to change live in Config instead.
"""

# =============================================================================
# Time Constants
# =============================================================================

MS_PER_SECOND = 1000
SECONDS_PER_MINUTE = 60

# =============================================================================
# Rate Limit Courtesy Delays (seconds)
# =============================================================================

CHANNEL_RECREATE_DELAY = 0.35         # Between channel recreations
QUARANTINE_DELAY = 0.45               # Between per-actor quarantines

# =============================================================================
# Attribution
# =============================================================================

MAX_SUSPECTS = 6                      # Actors collected per raid
AUDIT_LOG_FETCH_LIMIT = 20            # Entries scanned per attribution
ATTRIBUTION_WINDOW_FACTOR = 2         # Entries newer than factor x window

# =============================================================================
# Scheduling
# =============================================================================

DEFAULT_SNAPSHOT_INTERVAL = 5 * SECONDS_PER_MINUTE
FLOOD_PRUNE_INTERVAL = 500            # Messages between idle-pair sweeps

# =============================================================================
# Storage Keys
# =============================================================================

GUILD_BACKUP_PREFIX = "backup_"
ROLE_BACKUP_PREFIX = "roles_backup_"

# =============================================================================
# Display
# =============================================================================

ALERT_DESCRIPTION_MAX = 1024
