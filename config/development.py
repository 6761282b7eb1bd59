import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

# memory | mysql
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "scan_attendance"),
}

DEBUG = True

# If enabled (mysql backend), schema.sql is applied on startup (CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

DEFAULT_RADIUS_METERS = float(os.getenv("DEFAULT_RADIUS_METERS", "100"))
DEFAULT_LATE_AFTER_MINUTES = int(os.getenv("DEFAULT_LATE_AFTER_MINUTES", "10"))

TOKEN_TTL_SECONDS = int(os.getenv("TOKEN_TTL_SECONDS", "43200"))

STORE_RETRY_ATTEMPTS = int(os.getenv("STORE_RETRY_ATTEMPTS", "3"))
STORE_RETRY_BACKOFF_SECONDS = float(os.getenv("STORE_RETRY_BACKOFF_SECONDS", "0.2"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")

# Roster for the memory backend
DEMO_ROSTER = [
    {"person_id": "op-1", "full_name": "Demo Operator", "email": "operator@example.com", "role": "operator"},
    {"person_id": "s-1", "full_name": "An Nguyen", "email": "an@example.com", "roll": "CS-01", "audience": "student"},
    {"person_id": "s-2", "full_name": "Binh Tran", "email": "binh@example.com", "roll": "CS-02", "audience": "both", "room": "B-204"},
    {"person_id": "r-1", "full_name": "Chi Le", "email": "chi@example.com", "room": "A-101", "audience": "resident"},
]
