from __future__ import annotations

from flask import Flask, Response, request

from ..common.http import current_identity, fail, json_body, ok, respond, token_required
from ..container import Container
from .qr import render_png


def register(app: Flask, container: Container) -> None:
    def audit_setup(success: bool) -> None:
        me = current_identity()
        container.audit_service.log_mfa_setup(
            tenant_id=me.tenant_id,
            user_id=me.user_id,
            email=me.username,
            ip_address=request.remote_addr or "",
            user_agent=request.headers.get("User-Agent", ""),
            success=success,
        )

    @app.route("/api/mfa/setup", methods=["POST"], endpoint="mfa_setup")
    @token_required
    def mfa_setup():
        me = current_identity()
        result = container.mfa_service.setup_mfa(tenant_id=me.tenant_id, user_id=me.user_id)
        audit_setup(result.is_success)
        return respond(result, message="Scan the QR code and confirm with a verification code")

    @app.route("/api/mfa/qr.png", methods=["GET"], endpoint="mfa_qr")
    @token_required
    def mfa_qr():
        me = current_identity()
        payload = container.mfa_service.qr_payload(tenant_id=me.tenant_id, user_id=me.user_id)
        if not payload:
            return fail("MFA is not set up for this user", 404)
        return Response(render_png(payload), mimetype="image/png")

    @app.route("/api/mfa/verify", methods=["POST"], endpoint="mfa_verify")
    @token_required
    def mfa_verify():
        me = current_identity()
        result = container.mfa_service.verify_mfa_code(
            tenant_id=me.tenant_id, user_id=me.user_id, code=json_body().get("code", "")
        )
        if result.is_failure:
            return respond(result)
        container.audit_service.log_mfa_verification(
            tenant_id=me.tenant_id,
            user_id=me.user_id,
            email=me.username,
            ip_address=request.remote_addr or "",
            user_agent=request.headers.get("User-Agent", ""),
            success=bool(result.value),
        )
        if not result.value:
            return fail("Invalid verification code", 400)
        return ok(True, "Code verified")

    @app.route("/api/mfa/enable", methods=["POST"], endpoint="mfa_enable")
    @token_required
    def mfa_enable():
        me = current_identity()
        result = container.mfa_service.enable_mfa(
            tenant_id=me.tenant_id, user_id=me.user_id, verification_code=json_body().get("code", "")
        )
        return respond(result, message="MFA enabled")

    @app.route("/api/mfa/disable", methods=["POST"], endpoint="mfa_disable")
    @token_required
    def mfa_disable():
        me = current_identity()
        result = container.mfa_service.disable_mfa(
            tenant_id=me.tenant_id, user_id=me.user_id, verification_code=json_body().get("code", "")
        )
        return respond(result, message="MFA disabled")
