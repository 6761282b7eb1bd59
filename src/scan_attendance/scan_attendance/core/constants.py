"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000.0

MIN_PHASES = 1
MAX_PHASES = 3

DEFAULT_RADIUS_METERS = 100
DEFAULT_LATE_AFTER_MINUTES = 10

HUMAN_TOKEN_LENGTH = 6
PHASE_TAG_PREFIX = "scan"

# Bounded read-validate-write passes for a single scan submission.
MAX_SCAN_ATTEMPTS = 3
MAX_FINALIZE_ATTEMPTS = 3
MAX_TRANSITION_ATTEMPTS = 3

MANUAL_OVERRIDE_DEVICE_ID = "manual_admin_override"

DEFAULT_HISTORY_LIMIT = 30
