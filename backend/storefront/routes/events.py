# Overview: Flask API routes for browsing the event catalog.

from flask import Blueprint, current_app, g, jsonify, request

from ..context import get_services
from ..decorators import require_capability
from ..permissions import can_manage_event
from ..responses import error_response, gateway_error_response
from ..schemas import SearchFilters
from ..services.gateway_service import EventNotFoundError, GatewayError
from ..validation import ValidationError


events_bp = Blueprint("events", __name__, url_prefix="/api")


@events_bp.get("/events")
@require_capability("BROWSE_EVENTS")
def list_events_route():
    """
    Search events.

    Query params: query, city, category, date_from, date_to, is_free.
    This is also the safe default view denied visitors are redirected to;
    every role holds BROWSE_EVENTS, so it only ever answers 200 or 503.
    """
    try:
        filters = SearchFilters.from_args(request.args)
    except ValidationError as e:
        return error_response(str(e), 400)

    try:
        events = get_services().gateway.list_events(filters)
    except GatewayError as e:
        return gateway_error_response(e)

    return jsonify({"events": [event.to_dict() for event in events]}), 200


@events_bp.get("/events/<int:event_id>")
@require_capability("BROWSE_EVENTS")
def get_event_route(event_id: int):
    """Event detail with ticket types, availability and whether the viewer may edit it."""
    try:
        event = get_services().gateway.get_event(event_id)
    except EventNotFoundError as e:
        return error_response(e.message, 404)
    except GatewayError as e:
        return gateway_error_response(e)

    body = event.to_dict()
    body["can_edit"] = can_manage_event(g.identity, event)
    return jsonify({"event": body}), 200


@events_bp.get("/categories")
@require_capability("BROWSE_EVENTS")
def list_categories_route():
    try:
        categories = get_services().gateway.list_categories()
    except GatewayError as e:
        return gateway_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to load categories")
        return error_response("Internal server error", 500)

    return jsonify({"categories": [c.to_dict() for c in categories]}), 200
