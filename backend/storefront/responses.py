# Overview: Shared JSON response helpers for views.

from __future__ import annotations

from flask import jsonify

from .context import get_services
from .services.gateway_service import GatewayError


def with_notifications(payload: dict) -> dict:
    """Attach (and drain) pending user notifications."""
    payload["notifications"] = [n.to_dict() for n in get_services().notifier.drain()]
    return payload


def error_response(message: str, status: int, **extra):
    body = {"error": message}
    body.update(extra)
    return jsonify(with_notifications(body)), status


def gateway_error_response(exc: GatewayError):
    """Upstream 4xx keeps its status (the API rejected our input); anything else is a 502."""
    status = exc.status_code if exc.status_code and 400 <= exc.status_code < 500 else 502
    return error_response(exc.message, status)
