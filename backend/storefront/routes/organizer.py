# Overview: Flask API routes for organizers; dashboard listings and event create/update with ticket types.

# backend/storefront/routes/organizer.py
"""
Organizer routes

- GET  /api/organizer/events         the organizer's own events
- GET  /api/organizer/tickets        ticket sales rolled up over those events
- POST /api/organizer/events         create an event (JSON or multipart with image)
- PUT  /api/organizer/events/<id>    update an event the caller may manage

Multipart bodies send event fields as form fields, `tickets` as a JSON
string and the optional banner as the `image` file part.
"""

import json

from flask import Blueprint, current_app, g, jsonify, request

from ..context import get_services
from ..decorators import denied_response, require_capability
from ..permissions import can_manage_event
from ..responses import error_response, gateway_error_response, with_notifications
from ..services.gateway_service import EventNotFoundError, GatewayError
from ..services.organizer_service import ticket_sales_summary
from ..validation import (
    EVENT_POLICY,
    ValidationError,
    enforce_rules_event,
    validate_payload,
    validate_ticket_types,
)


organizer_bp = Blueprint("organizer", __name__, url_prefix="/api/organizer")

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}


def _read_event_body(partial: bool):
    """Returns (fields, tickets, image) from a JSON or multipart request."""
    image = None
    if request.mimetype == "multipart/form-data":
        raw = request.form.to_dict()
        raw_tickets = raw.pop("tickets", None) or None
        if raw_tickets is not None:
            try:
                raw_tickets = json.loads(raw_tickets)
            except ValueError:
                raise ValidationError("tickets must be a JSON array")
        upload = request.files.get("image")
        if upload is not None and upload.filename:
            if upload.mimetype not in ALLOWED_IMAGE_TYPES:
                raise ValidationError("image must be a JPEG, PNG, WebP or GIF file")
            image = (upload.filename, upload.read(), upload.mimetype)
    else:
        raw = request.get_json(silent=True)
        if raw is not None and not isinstance(raw, dict):
            raise ValidationError("Invalid JSON payload")
        raw = dict(raw or {})
        raw_tickets = raw.pop("tickets", None)

    fields = validate_payload(payload=raw, policy=EVENT_POLICY, partial=partial)
    enforce_rules_event(fields)
    tickets = validate_ticket_types(raw_tickets)
    return fields, tickets, image


def _require_token():
    token = get_services().session.token
    if not token:
        raise GatewayError("Authentication credential missing. Please sign in.", status_code=401)
    return token


@organizer_bp.get("/events")
@require_capability("VIEW_ORGANIZER_DASHBOARD")
def list_my_events_route():
    try:
        events = get_services().gateway.list_organizer_events(_require_token(), g.identity.id)
    except GatewayError as e:
        return gateway_error_response(e)

    return jsonify({"events": [event.to_dict() for event in events]}), 200


@organizer_bp.get("/tickets")
@require_capability("VIEW_ORGANIZER_DASHBOARD")
def ticket_sales_route():
    try:
        events = get_services().gateway.list_organizer_events(_require_token(), g.identity.id)
    except GatewayError as e:
        return gateway_error_response(e)

    return jsonify(ticket_sales_summary(events)), 200


@organizer_bp.post("/events")
@require_capability("CREATE_EVENT")
def create_event_route():
    """
    Create an event with its ticket types.

    Required: title, start_datetime, end_datetime. Each ticket type needs
    type, price and quantity_total.
    """
    try:
        fields, tickets, image = _read_event_body(partial=False)
    except ValidationError as e:
        return error_response(str(e), 400)

    services = get_services()
    try:
        event = services.gateway.create_event(_require_token(), fields, tickets, image)
    except GatewayError as e:
        return gateway_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create event")
        return error_response("Internal server error", 500)

    current_app.logger.info("User %s created event %s", g.identity.id, event.id)
    services.notifier.success("Event created")
    return jsonify(with_notifications({"event": event.to_dict()})), 201


@organizer_bp.put("/events/<int:event_id>")
@require_capability("EDIT_EVENT")
def update_event_route(event_id: int):
    """
    Update an event. Only its organizer (or an admin) may do so; anyone
    else is redirected to the safe default view.
    """
    services = get_services()
    try:
        existing = services.gateway.get_event(event_id)
    except EventNotFoundError as e:
        return error_response(e.message, 404)
    except GatewayError as e:
        return gateway_error_response(e)

    if not can_manage_event(g.identity, existing):
        current_app.logger.info("Denied edit of event %s by user %s", event_id, g.identity.id)
        return denied_response()

    try:
        fields, tickets, image = _read_event_body(partial=True)
    except ValidationError as e:
        return error_response(str(e), 400)

    try:
        event = services.gateway.update_event(_require_token(), event_id, fields, tickets, image)
    except GatewayError as e:
        return gateway_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update event %s", event_id)
        return error_response("Internal server error", 500)

    services.notifier.success("Event updated")
    return jsonify(with_notifications({"event": event.to_dict()})), 200
