from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User roles used for authorization."""

    SUPER_ADMIN = "super_admin"
    TENANT_ADMIN = "tenant_admin"
    SYSTEM_ADMIN = "system_admin"
    DRIVER = "driver"
    PARENT = "parent"
    STUDENT = "student"
    DISPATCHER = "dispatcher"
    MAINTENANCE = "maintenance"


ADMIN_ROLES = frozenset({Role.SUPER_ADMIN, Role.TENANT_ADMIN, Role.SYSTEM_ADMIN})
STAFF_ROLES = ADMIN_ROLES | {Role.DISPATCHER}


class StudentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    GRADUATED = "GRADUATED"
    TRANSFERRED = "TRANSFERRED"


class DriverStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"


class VehicleStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"
    OUT_OF_SERVICE = "OUT_OF_SERVICE"
    RETIRED = "RETIRED"


class VehicleType(str, Enum):
    BUS = "BUS"
    MINI_BUS = "MINI_BUS"
    VAN = "VAN"
    CAR = "CAR"
    SPECIAL_NEEDS = "SPECIAL_NEEDS"


class RouteStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    UNDER_REVIEW = "UNDER_REVIEW"


class TripStatus(str, Enum):
    """Trip lifecycle: SCHEDULED -> IN_PROGRESS -> COMPLETED (or CANCELLED)."""

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DELAYED = "DELAYED"


class AttendanceStatus(str, Enum):
    """Boarding status stored per (student, trip)."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    EXCUSED = "EXCUSED"
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class PaymentType(str, Enum):
    ONE_TIME = "ONE_TIME"
    RECURRING = "RECURRING"
    SUBSCRIPTION = "SUBSCRIPTION"
    DEPOSIT = "DEPOSIT"
    FEE = "FEE"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    BANK_TRANSFER = "BANK_TRANSFER"
    CHECK = "CHECK"
    ONLINE_PAYMENT = "ONLINE_PAYMENT"
    MOBILE_PAYMENT = "MOBILE_PAYMENT"


CARD_PAYMENT_METHODS = frozenset({PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD})


class GatewayProvider(str, Enum):
    STRIPE = "Stripe"
    PAYPAL = "PayPal"
    SQUARE = "Square"
    AUTHORIZE_NET = "Authorize.Net"
    MADA = "Mada"


class SecurityCheckType(str, Enum):
    PCI_COMPLIANCE = "PCI Compliance"
    CARD_SECURITY = "Card Security"
    FRAUD_DETECTION = "Fraud Detection"
    RATE_LIMITING = "Rate Limiting"
    ADDRESS_VERIFICATION = "Address Verification"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ViolationType(str, Enum):
    ROUTE_DEVIATION = "ROUTE_DEVIATION"
    SPEED_VIOLATION = "SPEED_VIOLATION"
    RESTRICTED_AREA = "RESTRICTED_AREA"
    STUDENT_NOT_BOARDED = "STUDENT_NOT_BOARDED"


class AlertSeverity(str, Enum):
    MEDIUM = "Medium"
    HIGH = "High"


class PasswordStrength(str, Enum):
    WEAK = "Weak"
    MEDIUM = "Medium"
    STRONG = "Strong"


class UploadKind(str, Enum):
    """Top-level folder an uploaded file lands in."""

    DRIVER = "drivers"
    VEHICLE = "vehicles"
    STUDENT = "students"
