from __future__ import annotations

from datetime import date

import pytest
from flask import Flask

from src.school_transport.school_transport.common.http import (
    current_identity,
    fail,
    ok,
    respond,
    roles_required,
    token_required,
)
from src.school_transport.school_transport.core.enums import Role, StudentStatus
from src.school_transport.school_transport.core.exceptions import DomainError, ValidationError
from src.school_transport.school_transport.core.result import PagedResult, Result
from src.school_transport.school_transport.users.model import User
from src.school_transport.school_transport.users.tokens import TokenService


class RecordingAudit:
    def __init__(self):
        self.denied = []

    def log_permission_denied(self, **kwargs):
        self.denied.append(kwargs)


@pytest.fixture
def tokens():
    return TokenService("test-secret", max_age_seconds=60)


@pytest.fixture
def app(tokens):
    app = Flask(__name__)
    app.config["TOKEN_SERVICE"] = tokens
    app.config["AUDIT_SERVICE"] = RecordingAudit()

    @app.errorhandler(DomainError)
    def handle(error):
        return fail(str(error), 400)

    @app.route("/ok")
    def ok_view():
        return ok({"status": StudentStatus.ACTIVE, "on": date(2026, 3, 2)}, "fine")

    @app.route("/paged")
    def paged_view():
        return respond(Result.success(PagedResult(items=[1, 2], total_count=3, page=1, page_size=2)))

    @app.route("/missing")
    def missing_view():
        return respond(Result.failure("Student not found", not_found=True))

    @app.route("/invalid")
    def invalid_view():
        raise ValidationError("Grade is required")

    @app.route("/me")
    @token_required
    def me_view():
        return ok({"user_id": current_identity().user_id})

    @app.route("/admin")
    @roles_required(Role.TENANT_ADMIN)
    def admin_view():
        return ok(True)

    return app


def _token(tokens, role):
    return tokens.issue(User(user_id=5, tenant_id=1, username="u5", email="u5@rihla.test", password_hash="x", role=role))


def test_success_envelope_serializes_enums_and_dates(app):
    body = app.test_client().get("/ok").get_json()
    assert body == {"success": True, "data": {"status": "ACTIVE", "on": "2026-03-02"}, "message": "fine"}


def test_paged_payload(app):
    data = app.test_client().get("/paged").get_json()["data"]
    assert data["items"] == [1, 2]
    assert data["total_pages"] == 2
    assert data["has_next_page"] is True


def test_not_found_maps_to_404(app):
    resp = app.test_client().get("/missing")
    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "data": None, "message": "Student not found"}


def test_domain_error_handler(app):
    resp = app.test_client().get("/invalid")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Grade is required"


def test_token_required(app, tokens):
    client = app.test_client()
    assert client.get("/me").status_code == 401
    assert client.get("/me", headers={"Authorization": "Bearer garbage"}).status_code == 401

    resp = client.get("/me", headers={"Authorization": f"Bearer {_token(tokens, Role.DRIVER)}"})
    assert resp.get_json()["data"] == {"user_id": 5}

    via_query = client.get(f"/me?access_token={_token(tokens, Role.DRIVER)}")
    assert via_query.status_code == 200


def test_wrong_role_is_403_and_audited(app, tokens):
    client = app.test_client()
    resp = client.get("/admin", headers={"Authorization": f"Bearer {_token(tokens, Role.PARENT)}"})

    assert resp.status_code == 403
    denied = app.config["AUDIT_SERVICE"].denied
    assert len(denied) == 1
    assert denied[0]["resource"] == "/admin"

    allowed = client.get("/admin", headers={"Authorization": f"Bearer {_token(tokens, Role.TENANT_ADMIN)}"})
    assert allowed.status_code == 200
