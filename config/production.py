import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "school_transport"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

TOKEN_MAX_AGE = int(os.getenv("TOKEN_MAX_AGE", str(8 * 60 * 60)))
DEFAULT_TENANT_ID = int(os.getenv("DEFAULT_TENANT_ID", "1"))

UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "/var/lib/school_transport/uploads")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

SMS_API_KEY = os.getenv("SMS_API_KEY")
SMS_SENDER = os.getenv("SMS_SENDER", "Rihla")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
