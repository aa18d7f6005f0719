"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_KM = 6371.0

# Geofence radii used by the attendance and tracking flows.
STOP_GEOFENCE_RADIUS_KM = 0.5
STOP_PROXIMITY_HIGH_KM = 0.1
ALLOWED_ROUTE_DEVIATION_KM = 2.0
SEVERE_ROUTE_DEVIATION_KM = 5.0

SPEED_LIMIT_KMH = 60.0
SEVERE_SPEED_FACTOR = 1.2

DEFAULT_AVERAGE_SPEED_KMH = 30.0
ETA_SPEED_WINDOW_MINUTES = 10
ETA_MAX_BUFFER_MINUTES = 15
TRIP_ON_TIME_TOLERANCE_MINUTES = 5

# Payment risk classification.
HIGH_AMOUNT_THRESHOLD = 1000
MEDIUM_RISK_THRESHOLD = 25
HIGH_RISK_THRESHOLD = 50
PROCESSING_FEE_RATE = 0.029

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

MAX_FAILED_LOGINS = 5
LOCKOUT_MINUTES = 15
DEFAULT_TOKEN_MAX_AGE_SECONDS = 8 * 60 * 60

MFA_ISSUER = "Rihla School Transport"
MFA_BACKUP_CODE_COUNT = 8
MFA_TIME_STEP_SECONDS = 30
MFA_CODE_DIGITS = 6

MIN_PASSWORD_LENGTH = 12
PASSWORD_SPECIAL_CHARS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

SMS_MAX_RETRIES = 3
SMS_BASE_DELAY_SECONDS = 1.0

MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})
ALLOWED_DOCUMENT_EXTENSIONS = frozenset({".pdf", ".doc", ".docx", ".jpg", ".jpeg", ".png"})
