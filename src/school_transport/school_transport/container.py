from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .audit.mysql_audit_repository import MySQLAuditLogRepository
from .audit.service import AuditLogService
from .core.constants import DEFAULT_TOKEN_MAX_AGE_SECONDS, MAX_UPLOAD_BYTES
from .database.connection import DBConfig, DatabaseConnection
from .drivers.mysql_driver_repository import MySQLDriverRepository
from .drivers.service import DriverService
from .files.service import FileUploadService
from .mfa.service import MfaService
from .notifications.hub import NotificationHub
from .notifications.service import NotificationService
from .notifications.sms import LoggingSmsGateway, SmsService
from .payments.gateway import PaymentGatewayService
from .payments.mysql_payment_repository import MySQLPaymentRepository
from .payments.security.scorer import PaymentRiskScorer
from .payments.service import PaymentService
from .routes.mysql_route_repository import MySQLRouteRepository
from .routes.service import RouteService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.service import StudentService
from .tracking.mysql_location_repository import MySQLVehicleLocationRepository
from .tracking.service import TrackingService
from .trips.mysql_trip_repository import MySQLTripRepository
from .trips.service import TripService
from .users.mysql_user_repository import MySQLUserRepository
from .users.password_policy import PasswordPolicyService
from .users.service import AuthService, UserService
from .users.tokens import TokenService
from .vehicles.mysql_vehicle_repository import MySQLVehicleRepository
from .vehicles.service import VehicleService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    users_repo: MySQLUserRepository
    audit_repo: MySQLAuditLogRepository
    students_repo: MySQLStudentRepository
    drivers_repo: MySQLDriverRepository
    vehicles_repo: MySQLVehicleRepository
    routes_repo: MySQLRouteRepository
    trips_repo: MySQLTripRepository
    attendance_repo: MySQLAttendanceRepository
    locations_repo: MySQLVehicleLocationRepository
    payments_repo: MySQLPaymentRepository

    notification_hub: NotificationHub
    notification_service: NotificationService
    sms_service: SmsService
    file_service: FileUploadService

    token_service: TokenService
    password_policy: PasswordPolicyService
    audit_service: AuditLogService
    mfa_service: MfaService
    auth_service: AuthService
    user_service: UserService

    student_service: StudentService
    driver_service: DriverService
    vehicle_service: VehicleService
    route_service: RouteService
    trip_service: TripService
    attendance_service: AttendanceService
    tracking_service: TrackingService
    payment_gateway: PaymentGatewayService
    payment_service: PaymentService


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    def setting(name: str, default: Any = None) -> Any:
        return getattr(settings, name, default)

    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    users_repo = MySQLUserRepository(conn)
    audit_repo = MySQLAuditLogRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    drivers_repo = MySQLDriverRepository(conn)
    vehicles_repo = MySQLVehicleRepository(conn)
    routes_repo = MySQLRouteRepository(conn)
    trips_repo = MySQLTripRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    locations_repo = MySQLVehicleLocationRepository(conn)
    payments_repo = MySQLPaymentRepository(conn)

    notification_hub = NotificationHub()
    notification_service = NotificationService(notification_hub)
    sms_service = SmsService(
        LoggingSmsGateway(),
        api_key=setting("SMS_API_KEY"),
        sender_id=setting("SMS_SENDER", "Rihla"),
    )
    file_service = FileUploadService(
        setting("UPLOAD_FOLDER", "uploads"),
        max_bytes=int(setting("MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES)),
    )

    token_service = TokenService(
        str(setting("SECRET_KEY", "dev-secret-key")),
        max_age_seconds=int(setting("TOKEN_MAX_AGE", DEFAULT_TOKEN_MAX_AGE_SECONDS)),
    )
    password_policy = PasswordPolicyService()
    audit_service = AuditLogService(audit_repo)
    mfa_service = MfaService(users_repo)
    auth_service = AuthService(users_repo, mfa_service, audit_service, token_service, password_policy)
    user_service = UserService(users_repo, password_policy, audit_service)

    student_service = StudentService(students_repo, routes_repo, users_repo, password_policy)
    driver_service = DriverService(drivers_repo)
    vehicle_service = VehicleService(vehicles_repo, drivers_repo)
    route_service = RouteService(routes_repo, students_repo, vehicles_repo, drivers_repo)
    trip_service = TripService(trips_repo, routes_repo, vehicles_repo, drivers_repo, notification_service)
    attendance_service = AttendanceService(attendance_repo, students_repo, trips_repo, routes_repo, notification_service)
    tracking_service = TrackingService(locations_repo, vehicles_repo, trips_repo, routes_repo, notification_service)
    payment_gateway = PaymentGatewayService(PaymentRiskScorer())
    payment_service = PaymentService(payments_repo, students_repo, payment_gateway)

    return Container(
        conn=conn,
        users_repo=users_repo,
        audit_repo=audit_repo,
        students_repo=students_repo,
        drivers_repo=drivers_repo,
        vehicles_repo=vehicles_repo,
        routes_repo=routes_repo,
        trips_repo=trips_repo,
        attendance_repo=attendance_repo,
        locations_repo=locations_repo,
        payments_repo=payments_repo,
        notification_hub=notification_hub,
        notification_service=notification_service,
        sms_service=sms_service,
        file_service=file_service,
        token_service=token_service,
        password_policy=password_policy,
        audit_service=audit_service,
        mfa_service=mfa_service,
        auth_service=auth_service,
        user_service=user_service,
        student_service=student_service,
        driver_service=driver_service,
        vehicle_service=vehicle_service,
        route_service=route_service,
        trip_service=trip_service,
        attendance_service=attendance_service,
        tracking_service=tracking_service,
        payment_gateway=payment_gateway,
        payment_service=payment_service,
    )
