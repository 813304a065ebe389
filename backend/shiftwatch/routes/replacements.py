# Overview: Flask API routes for replacement requests; volunteer, approve, reject, list.

"""
Replacement Routes

Volunteering acts on the calling employee. Approve/reject record the
reviewer from X-Reviewer-Id; who may review is enforced upstream.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_employee, require_reviewer, handle_service_errors
from ..models.replacements import REQUEST_STATUSES
from ..services import replacement_service
from ..services.shift_service import employee_names


replacements_bp = Blueprint("replacements", __name__, url_prefix="/api/replacements")


def _with_names(requests_) -> list[dict]:
    names = employee_names(
        [r.original_employee_id for r in requests_] + [r.replacement_employee_id for r in requests_]
    )
    result = []
    for r in requests_:
        d = r.to_dict()
        d["original_employee_name"] = names.get(r.original_employee_id)
        d["replacement_employee_name"] = names.get(r.replacement_employee_id)
        result.append(d)
    return result


@replacements_bp.post("")
@handle_service_errors("request replacement")
@require_employee
def request_replacement_route():
    data = request.get_json(silent=True) or {}
    shift_id = data.get("shift_id")
    if not isinstance(shift_id, int):
        return jsonify({"error": "shift_id is required"}), 400

    req = replacement_service.request_replacement(shift_id=shift_id, requesting_employee_id=g.employee_id)
    return jsonify({"request": req.to_dict()}), 201


@replacements_bp.get("")
@handle_service_errors("list replacement requests")
@require_employee
def list_requests_route():
    status = request.args.get("status")
    if status and status not in REQUEST_STATUSES:
        return jsonify({"error": f"status must be one of {', '.join(REQUEST_STATUSES)}"}), 400

    company_id = request.args.get("company_id", type=int) or g.current_employee.company_id
    shift_id = request.args.get("shift_id", type=int)

    requests_ = replacement_service.list_requests(status=status, company_id=company_id, shift_id=shift_id)
    result = _with_names(requests_)
    return jsonify({"requests": result, "count": len(result)})


@replacements_bp.post("/<int:request_id>/approve")
@handle_service_errors("approve replacement")
@require_reviewer
def approve_request_route(request_id: int):
    req = replacement_service.approve_request(request_id=request_id, reviewer_id=g.reviewer_id)
    return jsonify({"request": req.to_dict()})


@replacements_bp.post("/<int:request_id>/reject")
@handle_service_errors("reject replacement")
@require_reviewer
def reject_request_route(request_id: int):
    data = request.get_json(silent=True) or {}
    req = replacement_service.reject_request(
        request_id=request_id,
        reviewer_id=g.reviewer_id,
        notes=data.get("notes"),
    )
    return jsonify({"request": req.to_dict()})
