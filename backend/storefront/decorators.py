# Overview: Route guard decorators; map the authorization gate onto views.

from functools import wraps
from flask import current_app, g, jsonify, redirect, request, url_for

from .context import get_services
from .permissions import GuardState, evaluate_guard

# Seconds a client should wait before retrying while the session loads
LOADING_RETRY_AFTER = 1


def loading_response():
    response = jsonify({"status": "loading", "message": "Session is loading"})
    response.status_code = 503
    response.headers["Retry-After"] = str(LOADING_RETRY_AFTER)
    return response


def denied_response():
    return redirect(url_for(current_app.config["SAFE_DEFAULT_ENDPOINT"]))


def require_capability(capability_code: str):
    """
    Require a capability of the signed-in identity.

    UNKNOWN (session loading) -> 503 loading response, never a denial.
    DENIED -> silent redirect to the safe default view.
    AUTHORIZED -> sets g.identity (None when nobody is signed in) and runs the view.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            session = get_services().session_view
            state = evaluate_guard(session, capability_code)

            if state is GuardState.UNKNOWN:
                return loading_response()

            if state is GuardState.DENIED:
                current_app.logger.info(
                    "Denied %s %s (requires %s)", request.method, request.path, capability_code
                )
                return denied_response()

            g.identity = session.identity if session.is_authenticated else None
            return f(*args, **kwargs)

        return decorated_function
    return decorator
