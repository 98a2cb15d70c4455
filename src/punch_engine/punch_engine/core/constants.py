"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_RADIUS_METERS = 200.0
DEFAULT_SHIFT_START = "09:30"
DEFAULT_SHIFT_END = "18:30"
# IST (UTC+05:30)
DEFAULT_TIMEZONE_OFFSET_MINUTES = 330

DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0
DEFAULT_LOCATION_TIMEOUT_SECONDS = 15.0
DEFAULT_LOCATION_MAX_AGE_SECONDS = 120.0
MAX_ROLLOVER_CHECK_SECONDS = 60.0
