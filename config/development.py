import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_transport"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# Bearer tokens expire after this many seconds
TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", str(8 * 60 * 60)))
DEFAULT_TENANT_ID = int(os.getenv("DEFAULT_TENANT_ID", "1"))

UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

# Without an API key SMS messages are only logged
SMS_API_KEY = os.getenv("SMS_API_KEY")
SMS_SENDER = os.getenv("SMS_SENDER", "Rihla")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))
# Optional: also seed demo users on startup
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
