import os

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_engine"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

STANDARD_DAY_HOURS = float(os.getenv("STANDARD_DAY_HOURS", "8"))
GEOFENCE_STRICT = bool(int(os.getenv("GEOFENCE_STRICT", "1")))
AUTO_APPROVE_PRIVILEGED = bool(int(os.getenv("AUTO_APPROVE_PRIVILEGED", "0")))
STORE_TIMEOUT_SECONDS = int(os.getenv("STORE_TIMEOUT_SECONDS", "5"))
EVENT_MAX_RETRIES = int(os.getenv("EVENT_MAX_RETRIES", "3"))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
