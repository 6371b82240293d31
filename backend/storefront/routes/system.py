# backend/storefront/routes/system.py
"""
System health endpoint.

Reports whether local credential storage is reachable and whether the
session has finished bootstrapping. The remote API is not contacted.
"""

import time

from flask import Blueprint, current_app

from ..context import get_services
from ..extensions import db
from ..models import ClientStorageEntry
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_storage_health() -> dict:
    start_time = time.time()
    try:
        entries = db.session.query(ClientStorageEntry).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"entries": entries},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Storage error",
        }


def check_session_health() -> dict:
    session = get_services().session_view
    if session.loading:
        return {"status": "degraded", "warning": "Session is loading"}
    return {"status": "healthy", "details": {"authenticated": session.is_authenticated}}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: storage unreachable
    """
    storage_health = check_storage_health()
    session_health = check_session_health()

    if storage_health["status"] == "unhealthy":
        overall_status, http_status = "unhealthy", 503
    elif session_health["status"] == "degraded":
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "checks": {
            "storage": storage_health,
            "session": session_health,
        },
    }, http_status
