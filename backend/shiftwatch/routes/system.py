# backend/shiftwatch/routes/system.py
"""
System health and change-feed endpoints.
"""

import time
from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import text

from ..extensions import db
from ..decorators import require_employee, handle_service_errors
from ..services import event_service
from ..services.watchdog import EXTENSION_KEY as WATCHDOG_KEY
from shiftwatch.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health_route():
    database = check_database_health()
    watchdog = current_app.extensions.get(WATCHDOG_KEY)
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "time": to_utc_z(utcnow()),
        "database": database,
        "watchdog": {"enabled": watchdog is not None, "running": bool(watchdog and watchdog.running)},
    }), 200 if healthy else 503


@system_bp.get("/api/events")
@handle_service_errors("list attendance events")
@require_employee
def list_events_route():
    """Change feed: events with id > after_id, oldest first."""
    after_id = request.args.get("after_id", 0, type=int)
    limit = request.args.get("limit", event_service.EVENT_PAGE_LIMIT, type=int)
    company_id = request.args.get("company_id", type=int)

    events = event_service.list_events(after_id=after_id, company_id=company_id, limit=limit)
    last_id = events[-1].id if events else after_id
    return jsonify({"events": [e.to_dict() for e in events], "last_id": last_id})
