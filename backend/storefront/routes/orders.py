# Overview: Flask API routes for the signed-in user's order history.

from flask import Blueprint, jsonify

from ..context import get_services
from ..decorators import require_capability
from ..responses import error_response, gateway_error_response
from ..services.gateway_service import GatewayError


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_capability("VIEW_ORDERS")
def list_orders_route():
    services = get_services()
    token = services.session.token
    if not token:
        return error_response("Authentication credential missing. Please sign in.", 401)

    try:
        orders = services.gateway.list_orders(token)
    except GatewayError as e:
        return gateway_error_response(e)

    return jsonify({"orders": [order.to_dict() for order in orders]}), 200
