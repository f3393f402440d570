# backend/kioskpos/routes/system.py
"""
System health endpoint.

Checks database connectivity and the object storage root.
"""

import os
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Profile, SessionToken
from ..services import storage_service, realtime_service
from kioskpos.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        profile_count = db.session.query(Profile).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "profiles": profile_count,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_storage_health() -> dict:
    root = storage_service.storage_root()
    if os.path.isdir(root) and not os.access(root, os.W_OK):
        return {"status": "unhealthy", "error": "Storage root is not writable"}
    # A missing root is created on first upload
    return {"status": "healthy", "details": {"root_exists": os.path.isdir(root)}}


@system_bp.get("/health")
def health():
    """
    Health check.

    Returns:
    - 200: all checks healthy
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    storage_health = check_storage_health()

    all_checks = [database_health, storage_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "storage": storage_health,
        },
        "realtime_subscribers": realtime_service.bus.subscriber_count,
    }

    return response, http_status
