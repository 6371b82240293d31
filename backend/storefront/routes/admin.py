# Overview: Flask API routes for administrators; user directory from the remote API.

from collections import Counter

from flask import Blueprint, jsonify

from ..context import get_services
from ..decorators import require_capability
from ..permissions import role_for
from ..responses import error_response, gateway_error_response
from ..services.gateway_service import GatewayError


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_capability("MANAGE_USERS")
def list_users_route():
    """All users, plus how many hold each role."""
    services = get_services()
    token = services.session.token
    if not token:
        return error_response("Authentication credential missing. Please sign in.", 401)

    try:
        users = services.gateway.list_users(token)
    except GatewayError as e:
        return gateway_error_response(e)

    counts = Counter(role_for(user).name.lower() for user in users)
    return jsonify({
        "users": [user.to_dict() for user in users],
        "counts": dict(counts),
    }), 200
