# Overview: Flask API routes for missed and upcoming shifts, and starting a replacement shift.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_employee, handle_service_errors
from ..services import replacement_service, shift_service
from ..services.shift_service import employee_names, shift_to_dict
from shiftwatch.time_utils import utcnow


shifts_bp = Blueprint("shifts", __name__, url_prefix="/api/shifts")


@shifts_bp.get("/missed")
@handle_service_errors("list missed shifts")
@require_employee
def list_missed_shifts_route():
    """
    Missed shifts for a company (defaults to the caller's company).

    The caller's own missed shifts are left out; pass include_own=1 to keep them.
    """
    company_id = request.args.get("company_id", type=int) or g.current_employee.company_id
    include_own = request.args.get("include_own", "0") in {"1", "true", "yes"}

    shifts = shift_service.list_missed_shifts(
        company_id=company_id,
        exclude_employee_id=None if include_own else g.employee_id,
    )

    names = employee_names(
        [s.employee_id for s in shifts] + [s.replacement_employee_id for s in shifts]
    )
    result = [shift_to_dict(s, names) for s in shifts]
    return jsonify({"shifts": result, "count": len(result)})


@shifts_bp.get("/upcoming")
@handle_service_errors("load upcoming shift")
@require_employee
def upcoming_shift_route():
    shift = shift_service.get_upcoming_shift(g.employee_id, now=utcnow())
    return jsonify({"shift": shift_to_dict(shift) if shift else None})


@shifts_bp.post("/<int:shift_id>/start-replacement")
@handle_service_errors("start replacement shift")
@require_employee
def start_replacement_route(shift_id: int):
    entry = replacement_service.start_replacement_shift(shift_id=shift_id, employee_id=g.employee_id)
    shift = shift_service.get_shift(shift_id)
    return jsonify({"entry": entry.to_dict(), "shift": shift_to_dict(shift)}), 201
