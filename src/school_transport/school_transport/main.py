from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.http import fail
from .core.exceptions import AuthenticationError, AuthorizationError, DeliveryError, DomainError, NotFoundError
from .database.bootstrap import apply_schema, apply_seed_sql, ensure_demo_users, list_tables

from .container import build_container
from .attendance.controller import register as register_attendance
from .audit.controller import register as register_audit
from .drivers.controller import register as register_drivers
from .files.controller import register as register_files
from .mfa.controller import register as register_mfa
from .notifications.controller import register as register_notifications
from .payments.controller import register as register_payments
from .routes.controller import register as register_routes
from .students.controller import register as register_students
from .tracking.controller import register as register_tracking
from .trips.controller import register as register_trips
from .users.controller import register as register_users
from .vehicles.controller import register as register_vehicles

logger = logging.getLogger(__name__)

_ERROR_STATUS = (
    (NotFoundError, 404),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (DeliveryError, 502),
)


def _status_for(error: DomainError) -> int:
    for kind, status in _ERROR_STATUS:
        if isinstance(error, kind):
            return status
    return 400


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["DEFAULT_TENANT_ID"] = int(getattr(settings, "DEFAULT_TENANT_ID", 1))
    app.config["MAX_CONTENT_LENGTH"] = int(getattr(settings, "MAX_UPLOAD_BYTES", 5 * 1024 * 1024)) + 64 * 1024

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    database_dir = Path(__file__).resolve().parents[3] / "database"
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=database_dir / "schema.sql")
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        seed_path = database_dir / "seed.sql"
        if seed_path.exists():
            apply_seed_sql(db_config, seed_path=seed_path)
        ensure_demo_users(db_config, tenant_id=app.config["DEFAULT_TENANT_ID"])
        logger.info("Demo seed ready")

    container = build_container(db_config=db_config, settings=settings)
    app.config["TOKEN_SERVICE"] = container.token_service
    app.config["AUDIT_SERVICE"] = container.audit_service

    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        return fail(str(error), _status_for(error))

    register_users(app, container)
    register_mfa(app, container)
    register_audit(app, container)
    register_students(app, container)
    register_drivers(app, container)
    register_vehicles(app, container)
    register_routes(app, container)
    register_trips(app, container)
    register_attendance(app, container)
    register_tracking(app, container)
    register_payments(app, container)
    register_files(app, container)
    register_notifications(app, container)

    return app
