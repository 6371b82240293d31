# Overview: Flask API routes for the client session; sign-in, registration, logout and profile.

# backend/storefront/routes/session.py
"""
Session routes

- GET  /api/session           current session state and capabilities
- POST /api/session/login     email/password sign-in through the API
- POST /api/session/register  account registration through the API
- POST /api/session/token     adopt a credential obtained elsewhere
- POST /api/session/logout    clear the persisted credential
- PUT  /api/session/profile   update profile fields (signed in)

Sign-in and registration answer with the API's `user` object plus the
session state; the session identity itself comes from the credential.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..context import get_services
from ..decorators import require_capability
from ..permissions import capabilities_for
from ..responses import error_response, gateway_error_response
from ..services.gateway_service import GatewayError
from ..services.session_service import AuthenticationRequiredError
from ..validation import FieldPolicy, ValidationError, to_text, validate_payload


session_bp = Blueprint("session", __name__, url_prefix="/api/session")

PROFILE_POLICY = FieldPolicy(
    fields={
        "name": to_text,
        "email": to_text,
        "phone": to_text,
        "bio": to_text,
        "avatar_url": to_text,
    },
    max_lengths={"name": 255, "email": 255, "phone": 32, "avatar_url": 500},
)

REGISTER_POLICY = FieldPolicy(
    fields={
        "name": to_text,
        "email": to_text,
        "password": to_text,
        "phone": to_text,
        "bio": to_text,
        "avatar_url": to_text,
        "role_id": to_text,
    },
    required_on_create=frozenset({"name", "email", "password"}),
    max_lengths={"name": 255, "email": 255, "phone": 32, "avatar_url": 500},
)


def _session_state() -> dict:
    session = get_services().session_view
    state = session.to_dict()
    identity = session.identity if session.is_authenticated else None
    state["capabilities"] = sorted(capabilities_for(identity))
    return state


@session_bp.get("")
def session_state_route():
    return jsonify(_session_state()), 200


@session_bp.post("/login")
def login_route():
    """
    Sign in with email and password.

    Returns the API's user object and the resulting session state.
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")
    if not all([email, password]):
        return error_response("email and password required", 400)

    try:
        user = get_services().session.sign_in_with_credentials(email, password)
    except GatewayError as e:
        return gateway_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to sign in")
        return error_response("Internal server error", 500)

    return jsonify({"user": user.to_dict(), "session": _session_state()}), 200


@session_bp.post("/register")
def register_route():
    try:
        payload = validate_payload(
            payload=request.get_json(silent=True),
            policy=REGISTER_POLICY,
            partial=False,
        )
    except ValidationError as e:
        return error_response(str(e), 400)

    try:
        user = get_services().session.register_with_credentials(payload)
    except GatewayError as e:
        return gateway_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register")
        return error_response("Internal server error", 500)

    return jsonify({"user": user.to_dict(), "session": _session_state()}), 201


@session_bp.post("/token")
def token_route():
    """Adopt a credential (e.g. from an external sign-in flow)."""
    data = request.get_json(silent=True) or {}
    identity = get_services().session.login(data.get("token"))
    if identity is None:
        return error_response(get_services().session_view.error or "Invalid credential", 400)
    return jsonify({"session": _session_state()}), 200


@session_bp.post("/logout")
def logout_route():
    get_services().session.logout()
    return jsonify({"session": _session_state()}), 200


@session_bp.put("/profile")
@require_capability("EDIT_PROFILE")
def update_profile_route():
    try:
        fields = validate_payload(
            payload=request.get_json(silent=True),
            policy=PROFILE_POLICY,
            partial=True,
        )
    except ValidationError as e:
        return error_response(str(e), 400)
    if not fields:
        return error_response("No profile fields provided", 400)

    try:
        user = get_services().session.update_profile(g.identity.id, fields)
    except AuthenticationRequiredError as e:
        return error_response(e.message, 401)
    except GatewayError as e:
        return gateway_error_response(e)

    return jsonify({"user": user.to_dict(), "session": _session_state()}), 200
