"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from datetime import timedelta

EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_STANDARD_DAY_HOURS = 8
DEFAULT_STORE_TIMEOUT_SECONDS = 5
DEFAULT_EVENT_MAX_RETRIES = 3
DEFAULT_HISTORY_LIMIT = 30

# Allowance per break type, taken from the break management screen.
BREAK_ALLOWANCES = {
    "meal": timedelta(minutes=90),
    "short": timedelta(minutes=30),
    "rest": timedelta(minutes=20),
    "other": timedelta(minutes=60),
}
