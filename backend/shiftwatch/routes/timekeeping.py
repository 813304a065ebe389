# Overview: Flask API routes for timekeeping operations; parses input and returns JSON responses.

"""
Timekeeping Routes

Clock in/out and breaks act on the calling employee (X-Employee-Id).
Status is recomputed from stored timestamps on every request; clients may
poll it as often as they like.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_employee, handle_service_errors
from ..services import timekeeping_service
from ..services.timer_session import get_engine
from shiftwatch.time_utils import parse_iso_datetime


timekeeping_bp = Blueprint("timekeeping", __name__, url_prefix="/api/timekeeping")


@timekeeping_bp.post("/clock-in")
@handle_service_errors("clock in")
@require_employee
def clock_in_route():
    data = request.get_json(silent=True) or {}
    shift_id = data.get("shift_id")
    if shift_id is not None and not isinstance(shift_id, int):
        return jsonify({"error": "shift_id must be an integer"}), 400

    entry = get_engine(g.employee_id).clock_in(shift_id=shift_id, notes=data.get("notes"))
    return jsonify({"entry": entry.to_dict()}), 201


@timekeeping_bp.post("/clock-out")
@handle_service_errors("clock out")
@require_employee
def clock_out_route():
    entry = get_engine(g.employee_id).clock_out()
    return jsonify({"entry": entry.to_dict()})


@timekeeping_bp.post("/break/start")
@handle_service_errors("start break")
@require_employee
def start_break_route():
    data = request.get_json(silent=True) or {}
    duration_minutes = data.get("duration_minutes")
    if duration_minutes is None:
        return jsonify({"error": "duration_minutes is required"}), 400

    entry = get_engine(g.employee_id).start_break(duration_minutes)
    return jsonify({"entry": entry.to_dict()}), 201


@timekeeping_bp.post("/break/end")
@handle_service_errors("end break")
@require_employee
def end_break_route():
    entry = get_engine(g.employee_id).end_break()
    return jsonify({"entry": entry.to_dict()})


@timekeeping_bp.get("/status")
@handle_service_errors("load timer status")
@require_employee
def get_status_route():
    return jsonify(get_engine(g.employee_id).status().to_dict())


@timekeeping_bp.get("/entries")
@handle_service_errors("list time entries")
@require_employee
def list_entries_route():
    entries = timekeeping_service.list_entries(g.employee_id)
    return jsonify({"entries": [e.to_dict() for e in entries], "count": len(entries)})


@timekeeping_bp.get("/hours")
@handle_service_errors("load hours report")
@require_employee
def hours_report_route():
    company_id = request.args.get("company_id", type=int) or g.current_employee.company_id

    start = end = None
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end = parse_iso_datetime(request.args.get("end"))
    except ValueError:
        return jsonify({"error": "start/end must be ISO-8601 datetimes"}), 400

    rows = timekeeping_service.hours_by_employee(company_id=company_id, start=start, end=end)
    return jsonify({"company_id": company_id, "employees": rows})
