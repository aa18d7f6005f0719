from __future__ import annotations

from flask import Flask, request

from ..common.http import current_identity, paging_args, query_datetime, query_int, respond, roles_required
from ..core.enums import ADMIN_ROLES
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/audit-logs", methods=["GET"], endpoint="audit_logs")
    @roles_required(*ADMIN_ROLES)
    def audit_logs():
        page, page_size = paging_args()
        result = container.audit_service.get_audit_logs(
            tenant_id=current_identity().tenant_id,
            page=page,
            page_size=page_size,
            user_id=query_int("user_id"),
            action=request.args.get("action") or None,
            start=query_datetime("start"),
            end=query_datetime("end"),
        )
        return respond(result)

    @app.route("/api/audit-logs/count", methods=["GET"], endpoint="audit_log_count")
    @roles_required(*ADMIN_ROLES)
    def audit_log_count():
        result = container.audit_service.get_audit_log_count(
            tenant_id=current_identity().tenant_id,
            user_id=query_int("user_id"),
            action=request.args.get("action") or None,
            start=query_datetime("start"),
            end=query_datetime("end"),
        )
        return respond(result)

    @app.route("/api/audit-logs/security-events", methods=["GET"], endpoint="security_events")
    @roles_required(*ADMIN_ROLES)
    def security_events():
        page, page_size = paging_args()
        result = container.audit_service.get_security_events(
            tenant_id=current_identity().tenant_id, page=page, page_size=page_size
        )
        return respond(result)
