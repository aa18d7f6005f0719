import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_transport_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

TOKEN_MAX_AGE = 60 * 60
DEFAULT_TENANT_ID = 1

UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "uploads-test")
MAX_UPLOAD_BYTES = 5 * 1024 * 1024

SMS_API_KEY = None
SMS_SENDER = "Rihla"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
