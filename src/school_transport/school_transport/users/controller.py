from __future__ import annotations

from flask import Flask, request

from ..common.http import current_identity, fail, json_body, ok, paging_args, respond, roles_required, token_required
from ..core.enums import ADMIN_ROLES, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .service import RequestContext


def _parse_role(value) -> Role:
    try:
        return Role(str(value or "").lower())
    except ValueError:
        raise ValidationError("Invalid role")


def register(app: Flask, container: Container) -> None:
    def request_context() -> RequestContext:
        return RequestContext(ip_address=request.remote_addr or "", user_agent=request.headers.get("User-Agent", ""))

    def login_tenant(data: dict) -> int:
        raw = data.get("tenant_id") or request.headers.get("X-Tenant-Id") or app.config.get("DEFAULT_TENANT_ID", 1)
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ValidationError("Invalid tenant id")

    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        result = container.auth_service.authenticate(
            tenant_id=login_tenant(data),
            username=data.get("username", ""),
            password=data.get("password", ""),
            mfa_code=data.get("mfa_code"),
            ctx=request_context(),
        )
        if result.is_failure:
            return fail(result.error or "Login failed", 401, list(result.errors) or None)
        return ok(result.value, "Login successful")

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    @token_required
    def logout():
        me = current_identity()
        result = container.auth_service.logout(tenant_id=me.tenant_id, user_id=me.user_id, ctx=request_context())
        return respond(result, message="Logged out")

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    @token_required
    def me():
        identity = current_identity()
        return respond(container.user_service.get_user(tenant_id=identity.tenant_id, user_id=identity.user_id))

    @app.route("/api/auth/change-password", methods=["POST"], endpoint="change_password")
    @token_required
    def change_password():
        me = current_identity()
        data = json_body()
        result = container.auth_service.change_password(
            tenant_id=me.tenant_id,
            user_id=me.user_id,
            current_password=data.get("current_password", ""),
            new_password=data.get("new_password", ""),
            ctx=request_context(),
        )
        return respond(result, message="Password changed successfully")

    @app.route("/api/auth/password-strength", methods=["POST"], endpoint="password_strength")
    def password_strength():
        password = json_body().get("password", "")
        validation = container.password_policy.validate_password(password)
        return ok(
            {
                "is_valid": validation.is_valid,
                "errors": validation.errors,
                "strength": container.password_policy.get_password_strength(password),
            }
        )

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    @roles_required(*ADMIN_ROLES)
    def list_users():
        me = current_identity()
        page, page_size = paging_args()
        role = request.args.get("role")
        result = container.user_service.list_users(
            tenant_id=me.tenant_id, role=_parse_role(role) if role else None, page=page, page_size=page_size
        )
        return respond(result)

    @app.route("/api/users", methods=["POST"], endpoint="create_user")
    @roles_required(*ADMIN_ROLES)
    def create_user():
        me = current_identity()
        data = json_body()
        result = container.user_service.create_user(
            tenant_id=me.tenant_id,
            actor_role=me.role,
            username=data.get("username", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=_parse_role(data.get("role")),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            phone=data.get("phone"),
        )
        return respond(result, message="User created successfully", status=201)

    @app.route("/api/users/<int:user_id>", methods=["GET"], endpoint="get_user")
    @roles_required(*ADMIN_ROLES)
    def get_user(user_id: int):
        return respond(container.user_service.get_user(tenant_id=current_identity().tenant_id, user_id=user_id))

    @app.route("/api/users/<int:user_id>/role", methods=["PUT"], endpoint="change_user_role")
    @roles_required(*ADMIN_ROLES)
    def change_user_role(user_id: int):
        me = current_identity()
        result = container.user_service.change_role(
            tenant_id=me.tenant_id,
            actor_role=me.role,
            user_id=user_id,
            new_role=_parse_role(json_body().get("role")),
            ctx=request_context(),
        )
        return respond(result, message="Role updated")

    @app.route("/api/users/<int:user_id>/unlock", methods=["POST"], endpoint="unlock_user")
    @roles_required(*ADMIN_ROLES)
    def unlock_user(user_id: int):
        me = current_identity()
        result = container.user_service.unlock_account(tenant_id=me.tenant_id, user_id=user_id, ctx=request_context())
        return respond(result, message="Account unlocked")

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="delete_user")
    @roles_required(*ADMIN_ROLES)
    def delete_user(user_id: int):
        me = current_identity()
        result = container.user_service.delete_user(tenant_id=me.tenant_id, actor_id=me.user_id, user_id=user_id)
        return respond(result, message="User deleted successfully")
