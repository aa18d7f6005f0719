from __future__ import annotations

import json
import logging
from typing import Iterable

from flask import Flask, Response, request, stream_with_context

from ..common.http import current_identity, json_body, ok, respond, roles_required, to_json, token_required
from ..core.enums import STAFF_ROLES
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import Result
from ..container import Container
from ..trips.service import TripService
from .hub import HubEvent

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 15.0


def format_sse(event: HubEvent) -> str:
    data = json.dumps({"group": event.group, "sent_at": to_json(event.sent_at), **to_json(event.payload)})
    return f"event: {event.event}\ndata: {data}\n\n"


def parse_trip_ids(raw: Iterable[str]) -> list[int]:
    trip_ids = []
    for value in raw:
        try:
            trip_ids.append(int(value))
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid trip_id: {value}")
    return trip_ids


def require_tenant_trips(trip_service: TripService, *, tenant_id: int, trip_ids: Iterable[int]) -> list[int]:
    """Only trips of the caller's tenant may be followed."""
    trip_ids = list(trip_ids)
    for trip_id in trip_ids:
        found = trip_service.get_trip(tenant_id=tenant_id, trip_id=trip_id)
        if found.not_found:
            raise NotFoundError(f"Trip {trip_id} not found")
        if found.is_failure:
            raise ValidationError(found.error or "Trip lookup failed")
    return trip_ids


def register(app: Flask, container: Container) -> None:
    @app.route("/api/notifications/stream", methods=["GET"], endpoint="notification_stream")
    @token_required
    def notification_stream():
        tenant_id = current_identity().tenant_id
        trip_ids = require_tenant_trips(
            container.trip_service, tenant_id=tenant_id, trip_ids=parse_trip_ids(request.args.getlist("trip_id"))
        )
        sub = container.notification_service.open_stream(tenant_id=tenant_id, trip_ids=trip_ids)
        logger.info("Subscriber %s joined %s", sub.subscription_id, sorted(sub.groups))

        def generate():
            try:
                yield ": connected\n\n"
                while True:
                    event = sub.get(timeout=HEARTBEAT_SECONDS)
                    yield format_sse(event) if event is not None else ": keep-alive\n\n"
            finally:
                container.notification_service.close_stream(sub)
                logger.info("Subscriber %s left", sub.subscription_id)

        return Response(
            stream_with_context(generate()),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    @app.route("/api/notifications/emergency", methods=["POST"], endpoint="emergency_alert")
    @roles_required(*STAFF_ROLES)
    def emergency_alert():
        data = json_body()
        message = str(data.get("message") or "").strip()
        if not message:
            raise ValidationError("Message is required")
        delivered = container.notification_service.send_emergency_alert(
            tenant_id=current_identity().tenant_id, message=message
        )
        sms = container.sms_service.send_emergency_alert(list(data.get("phone_numbers") or []), message)
        return ok({"delivered": delivered, "sms": sms}, "Emergency alert sent")

    @app.route("/api/notifications/sms", methods=["POST"], endpoint="send_sms")
    @roles_required(*STAFF_ROLES)
    def send_sms():
        data = json_body()
        phone = str(data.get("phone_number") or "").strip()
        message = str(data.get("message") or "").strip()
        if not phone or not message:
            raise ValidationError("Phone number and message are required")
        sent = container.sms_service.send_sms(phone, message)
        if not sent:
            return respond(Result.failure("SMS service is not configured"))
        return ok(True, "SMS sent")
