# Overview: Flask API routes for the cart; reserve, adjust and remove tickets, and start checkout.

# backend/storefront/routes/cart.py
"""
Cart routes

Adding a ticket always re-fetches the event so the availability check runs
against fresh stock. Quantity changes check against the snapshot stored on
the line. Every response carries the notifications the operation raised.
"""

from flask import Blueprint, current_app, jsonify, request

from ..context import get_services
from ..decorators import loading_response, require_capability
from ..permissions import GuardState, evaluate_guard
from ..responses import error_response, gateway_error_response, with_notifications
from ..services.cart_service import AvailabilityError, CartLineNotFoundError
from ..services.checkout_service import prepare_checkout
from ..services.gateway_service import EventNotFoundError, GatewayError
from ..services.session_service import AuthenticationRequiredError, SessionNotReadyError
from ..validation import ValidationError, to_int, to_positive_int


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _cart_body() -> dict:
    return with_notifications({"cart": get_services().cart_view.to_dict()})


def _availability_response(e: AvailabilityError):
    return error_response(str(e), 409, ticket_id=e.ticket_type_id, available=e.available)


@cart_bp.get("")
@require_capability("MANAGE_CART")
def get_cart_route():
    return jsonify(_cart_body()), 200


@cart_bp.post("/items")
@require_capability("MANAGE_CART")
def add_item_route():
    """
    Add tickets to the cart.

    Body: {event_id, ticket_id, quantity}
    """
    data = request.get_json(silent=True) or {}
    try:
        event_id = to_positive_int(data.get("event_id"), "event_id")
        ticket_id = to_positive_int(data.get("ticket_id"), "ticket_id")
        quantity = to_int(data.get("quantity", 1), "quantity")
    except ValidationError as e:
        return error_response(str(e), 400)

    services = get_services()
    try:
        event = services.gateway.get_event(event_id)
    except EventNotFoundError as e:
        return error_response(e.message, 404)
    except GatewayError as e:
        return gateway_error_response(e)

    ticket = event.find_ticket(ticket_id)
    if ticket is None:
        return error_response("Ticket type not found", 404)

    try:
        services.cart.add_to_cart(ticket, quantity)
    except AvailabilityError as e:
        return _availability_response(e)
    except ValidationError as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to add ticket %s to cart", ticket_id)
        return error_response("Internal server error", 500)

    return jsonify(_cart_body()), 201


@cart_bp.patch("/items/<int:ticket_id>")
@require_capability("MANAGE_CART")
def update_item_route(ticket_id: int):
    """Set a line's quantity; 0 or less removes it."""
    data = request.get_json(silent=True) or {}
    if "quantity" not in data:
        return error_response("quantity required", 400)

    try:
        get_services().cart.update_quantity(ticket_id, data["quantity"])
    except AvailabilityError as e:
        return _availability_response(e)
    except CartLineNotFoundError as e:
        return error_response(str(e), 404)
    except ValidationError as e:
        return error_response(str(e), 400)

    return jsonify(_cart_body()), 200


@cart_bp.delete("/items/<int:ticket_id>")
@require_capability("MANAGE_CART")
def remove_item_route(ticket_id: int):
    get_services().cart.remove_from_cart(ticket_id)
    return jsonify(_cart_body()), 200


@cart_bp.delete("")
@require_capability("MANAGE_CART")
def clear_cart_route():
    get_services().cart.clear_cart()
    return jsonify(_cart_body()), 200


@cart_bp.post("/refresh")
@require_capability("MANAGE_CART")
def refresh_cart_route():
    """
    Re-fetch stock for every line.

    Quantities are clamped to current availability; lines whose ticket type
    or event is gone upstream, or with nothing left, are dropped. A transport
    failure or server error stops the refresh and leaves remaining lines as
    they were.
    """
    services = get_services()
    events = {}
    for line in services.cart_view.lines():
        event_id = line.ticket.event_id
        if event_id is None:
            continue
        if event_id not in events:
            try:
                events[event_id] = services.gateway.get_event(event_id)
            except EventNotFoundError:
                events[event_id] = None
            except GatewayError as e:
                return gateway_error_response(e)

        event = events[event_id]
        fresh = event.find_ticket(line.ticket_type_id) if event is not None else None
        if fresh is None:
            services.cart.drop_unavailable(line.ticket_type_id)
            continue
        try:
            services.cart.refresh_snapshot(fresh)
        except CartLineNotFoundError:
            # Removed concurrently
            continue

    return jsonify(_cart_body()), 200


@cart_bp.post("/checkout")
def checkout_route():
    """
    Start checkout for the signed-in user.

    503 while the session is loading, 401 with a login hint once it is known
    that nobody is signed in. Returns the summary the checkout step submits
    to the API.
    """
    services = get_services()
    state = evaluate_guard(services.session_view, "CHECKOUT")
    if state is GuardState.UNKNOWN:
        return loading_response()
    if state is GuardState.DENIED:
        return error_response("Please sign in to check out.", 401, login_required=True)

    try:
        summary = prepare_checkout(services.session_view, services.cart_view)
    except SessionNotReadyError:
        return loading_response()
    except AuthenticationRequiredError as e:
        return error_response(e.message, 401, login_required=True)
    except ValidationError as e:
        return error_response(str(e), 400)

    return jsonify(with_notifications({"checkout": summary.to_dict()})), 200
