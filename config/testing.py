import os

SECRET_KEY = "test-secret"

API_BASE_URL = "https://api.test"
HTTP_TIMEOUT_SECONDS = 5.0

OFFICE_ANCHOR = {
    "latitude": 23.0352554,
    "longitude": 72.5616832,
    "radius_meters": 200.0,
}

SHIFT_WINDOW = {
    "start": "09:30",
    "end": "18:30",
    "timezone_offset_minutes": 330,
}

LOCATION_TIMEOUT_SECONDS = 1.0
LOCATION_MAX_AGE_SECONDS = 120.0
ROLLOVER_CHECK_SECONDS = 60.0
PUNCH_IS_AWAY = False

STORAGE_BACKEND = "memory"
STORAGE_NAMESPACE = "test"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "punch_engine_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
START_SCHEDULER = False
