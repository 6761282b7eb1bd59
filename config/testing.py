import os

SECRET_KEY = "test-secret"

STORE_BACKEND = "memory"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "scan_attendance_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = False

DEFAULT_RADIUS_METERS = 100.0
DEFAULT_LATE_AFTER_MINUTES = 10

TOKEN_TTL_SECONDS = 3600

STORE_RETRY_ATTEMPTS = 2
STORE_RETRY_BACKOFF_SECONDS = 0.0

LOG_LEVEL = "WARNING"
LOG_FORMAT = "text"

DEMO_ROSTER = []
