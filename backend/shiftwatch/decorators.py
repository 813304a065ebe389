# Overview: Request identity and error-mapping decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app
from sqlalchemy.exc import OperationalError

from .extensions import db
from .models import Employee
from .services.errors import AttendanceError, StoreUnavailable


def _header_int(name: str):
    raw = request.headers.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _active_employee(employee_id: int):
    employee = db.session.query(Employee).filter_by(id=employee_id).first()
    if employee is None or not employee.is_active:
        return None
    return employee


def require_employee(f):
    """
    Resolve the calling employee.

    Sessions are handled upstream; the gateway forwards the employee id in
    the X-Employee-Id header. Sets:
    - g.current_employee: the active Employee row
    - g.employee_id: its id
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        employee_id = _header_int("X-Employee-Id")
        if employee_id is None:
            return jsonify({"error": "Employee identity required"}), 401

        employee = _active_employee(employee_id)
        if employee is None:
            return jsonify({"error": "Unknown or inactive employee"}), 401

        g.current_employee = employee
        g.employee_id = employee.id
        return f(*args, **kwargs)

    return decorated_function


def require_reviewer(f):
    """
    Resolve the reviewer for approve/reject.

    Uses X-Reviewer-Id, falling back to X-Employee-Id. Whether the caller may
    review is decided by the caller's role upstream.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        reviewer_id = _header_int("X-Reviewer-Id")
        if reviewer_id is None:
            reviewer_id = _header_int("X-Employee-Id")
        if reviewer_id is None:
            return jsonify({"error": "Reviewer identity required"}), 401

        g.reviewer_id = reviewer_id
        return f(*args, **kwargs)

    return decorated_function


def handle_service_errors(action: str):
    """
    Map service failures to JSON responses.

    - AttendanceError subclasses -> their own status code and error code
    - OperationalError -> 503 store_unavailable
    - anything else -> logged, 500

    Goes above require_employee / require_reviewer so the identity lookup
    is mapped as well.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except AttendanceError as e:
                return jsonify(e.to_dict()), e.status_code
            except OperationalError:
                db.session.rollback()
                current_app.logger.exception("Store unavailable: %s", action)
                err = StoreUnavailable()
                return jsonify(err.to_dict()), err.status_code
            except Exception:
                db.session.rollback()
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function
    return decorator
