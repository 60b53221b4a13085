import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_engine"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Engine toggles
STANDARD_DAY_HOURS = float(os.getenv("STANDARD_DAY_HOURS", "8"))
GEOFENCE_STRICT = bool(int(os.getenv("GEOFENCE_STRICT", "0")))
AUTO_APPROVE_PRIVILEGED = bool(int(os.getenv("AUTO_APPROVE_PRIVILEGED", "1")))
STORE_TIMEOUT_SECONDS = int(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
EVENT_MAX_RETRIES = int(os.getenv("EVENT_MAX_RETRIES", "3"))

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also load the demo workplace, employees and leave types
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
