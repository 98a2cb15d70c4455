import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

API_BASE_URL = os.getenv("API_BASE_URL", "https://karmyog.pythonanywhere.com")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))

OFFICE_ANCHOR = {
    "latitude": float(os.getenv("OFFICE_LATITUDE", "23.0352554")),
    "longitude": float(os.getenv("OFFICE_LONGITUDE", "72.5616832")),
    "radius_meters": float(os.getenv("OFFICE_RADIUS_METERS", "200")),
}

SHIFT_WINDOW = {
    "start": os.getenv("SHIFT_START", "09:30"),
    "end": os.getenv("SHIFT_END", "18:30"),
    "timezone_offset_minutes": int(os.getenv("SHIFT_TZ_OFFSET_MINUTES", "330")),
}

LOCATION_TIMEOUT_SECONDS = float(os.getenv("LOCATION_TIMEOUT_SECONDS", "15"))
LOCATION_MAX_AGE_SECONDS = float(os.getenv("LOCATION_MAX_AGE_SECONDS", "120"))
ROLLOVER_CHECK_SECONDS = float(os.getenv("ROLLOVER_CHECK_SECONDS", "60"))
PUNCH_IS_AWAY = bool(int(os.getenv("PUNCH_IS_AWAY", "0")))

STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")
STORAGE_NAMESPACE = os.getenv("STORAGE_NAMESPACE", "default")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "punch_engine"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
START_SCHEDULER = bool(int(os.getenv("START_SCHEDULER", "1")))
