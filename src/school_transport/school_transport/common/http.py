from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Optional, TypeVar

from flask import current_app, g, jsonify, request

from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..core.result import PagedResult, Result
from .datetime_utils import parse_iso_date, parse_iso_datetime
from .geo import Position
from .validators import normalize_paging, require_latitude, require_longitude

E = TypeVar("E", bound=Enum)


@dataclass(frozen=True)
class Identity:
    """Caller resolved from the bearer token."""

    user_id: int
    tenant_id: int
    role: Role
    username: str


def to_json(value: Any) -> Any:
    """Convert dataclasses/enums/dates into JSON-friendly values (recursively)."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
        for name in getattr(value, "__json_properties__", ()):
            out[name] = to_json(getattr(value, name))
        return out
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_json(v) for v in value]
    return value


def ok(data: Any = None, message: Optional[str] = None, status: int = 200):
    return jsonify({"success": True, "data": to_json(data), "message": message}), status


def fail(message: str, status: int = 400, errors: Optional[list[str]] = None):
    body: dict[str, Any] = {"success": False, "data": None, "message": message}
    if errors:
        body["errors"] = list(errors)
    return jsonify(body), status


def paged_payload(paged: PagedResult) -> dict:
    return {
        "items": paged.items,
        "total_count": paged.total_count,
        "page": paged.page,
        "page_size": paged.page_size,
        "total_pages": paged.total_pages,
        "has_previous_page": paged.has_previous_page,
        "has_next_page": paged.has_next_page,
    }


def respond(result: Result, *, message: Optional[str] = None, status: int = 200):
    """Map a service Result onto the {success, data, message} envelope."""
    if result.is_failure:
        return fail(result.error or "Request failed", 404 if result.not_found else 400, list(result.errors) or None)
    value = result.value
    if isinstance(value, PagedResult):
        value = paged_payload(value)
    return ok(value, message, status)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def paging_args() -> tuple[int, int]:
    return normalize_paging(request.args.get("page"), request.args.get("pageSize"))


def body_int(data: dict, key: str, *, required: bool = True) -> Optional[int]:
    raw = data.get(key)
    if raw in (None, ""):
        if required:
            raise ValidationError(f"{key} is required")
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")


def body_position(data: dict) -> Position:
    return Position(latitude=require_latitude(data.get("latitude")), longitude=require_longitude(data.get("longitude")))


def query_int(name: str) -> Optional[int]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an integer")


def query_float(name: str) -> Optional[float]:
    raw = request.args.get(name)
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be a number")


def query_enum(name: str, enum_cls: type[E]) -> Optional[E]:
    raw = request.args.get(name)
    if not raw:
        return None
    for member in enum_cls:
        if member.value.lower() == raw.strip().lower():
            return member
    raise ValidationError(f"Invalid value for '{name}': {raw}")


def query_date(name: str, default: Optional[date] = None) -> Optional[date]:
    raw = request.args.get(name)
    if not raw:
        return default
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be a date (YYYY-MM-DD)")


def query_datetime(name: str) -> Optional[datetime]:
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"Query parameter '{name}' must be an ISO timestamp")


def current_identity() -> Identity:
    return g.identity


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    # EventSource cannot set headers, so the SSE stream passes the token in the query string.
    return request.args.get("access_token") or None


def token_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if not token:
            return fail("Authentication required", 401)
        identity = current_app.config["TOKEN_SERVICE"].load(token)
        if identity is None:
            return fail("Invalid or expired token", 401)
        g.identity = identity
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    allowed = frozenset(roles)

    def decorator(view):
        @wraps(view)
        @token_required
        def wrapper(*args, **kwargs):
            identity = current_identity()
            if identity.role not in allowed:
                audit = current_app.config.get("AUDIT_SERVICE")
                if audit is not None:
                    audit.log_permission_denied(
                        tenant_id=identity.tenant_id,
                        user_id=identity.user_id,
                        email=identity.username,
                        action=request.method,
                        resource=request.path,
                        ip_address=request.remote_addr or "",
                        user_agent=request.headers.get("User-Agent", ""),
                    )
                return fail("You do not have permission to perform this action", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator
