"""
Concurrent approval tests.

Two managers approve different volunteers for the same missed shift at the
same moment. Uses a file-backed SQLite database so each thread gets its own
connection and transaction.
"""

import os
import threading
from datetime import datetime, timedelta

import pytest
from shiftwatch import create_app
from shiftwatch.extensions import db
from shiftwatch.models import Company, Employee, ReplacementRequest, Shift
from shiftwatch.models.replacements import REQUEST_APPROVED, REQUEST_REJECTED
from shiftwatch.models.scheduling import SHIFT_SCHEDULED
from shiftwatch.services import replacement_service, shift_service
from shiftwatch.services.errors import AlreadyReplaced


@pytest.fixture
def race_app(tmp_path):
    db_path = os.path.join(str(tmp_path), "race.db")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'WATCHDOG_ENABLED': False,
        'TIMER_RESTORE_ON_START': False,
    })
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def contested_requests(race_app):
    """A missed shift with pending requests from several volunteers."""
    with race_app.app_context():
        company = Company(name="Race Co", is_active=True)
        db.session.add(company)
        db.session.commit()

        owner = Employee(company_id=company.id, first_name="Owner", is_active=True)
        volunteers = [
            Employee(company_id=company.id, first_name=f"Volunteer {i}", is_active=True)
            for i in range(4)
        ]
        db.session.add_all([owner, *volunteers])
        db.session.commit()

        start = datetime(2026, 10, 19, 8, 0)
        shift = Shift(
            employee_id=owner.id,
            company_id=company.id,
            start_time=start,
            end_time=start + timedelta(hours=8),
            status=SHIFT_SCHEDULED,
            is_missed=False,
        )
        db.session.add(shift)
        db.session.commit()
        assert shift_service.mark_missed(shift.id, now=start + timedelta(minutes=16))

        request_ids = [
            replacement_service.request_replacement(shift_id=shift.id, requesting_employee_id=v.id).id
            for v in volunteers
        ]
        shift_id = shift.id
        db.session.remove()

    return shift_id, request_ids


class TestConcurrentApproval:
    def test_exactly_one_approval_wins(self, race_app, contested_requests):
        shift_id, request_ids = contested_requests

        approved = []
        errors = []
        lock = threading.Lock()
        barrier = threading.Barrier(len(request_ids))

        def worker(request_id, reviewer_id):
            with race_app.app_context():
                try:
                    barrier.wait()
                    req = replacement_service.approve_request(request_id=request_id, reviewer_id=reviewer_id)
                    with lock:
                        approved.append(req.replacement_employee_id)
                except Exception as exc:
                    with lock:
                        errors.append(exc)
                finally:
                    db.session.remove()

        threads = [
            threading.Thread(target=worker, args=(request_id, 100 + i))
            for i, request_id in enumerate(request_ids)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(approved) == 1
        assert len(errors) == len(request_ids) - 1
        assert all(isinstance(e, AlreadyReplaced) for e in errors)

        with race_app.app_context():
            shift = db.session.get(Shift, shift_id)
            assert shift.replacement_employee_id == approved[0]

            statuses = [r.status for r in db.session.query(ReplacementRequest).filter_by(shift_id=shift_id)]
            assert statuses.count(REQUEST_APPROVED) == 1
            assert statuses.count(REQUEST_REJECTED) == len(request_ids) - 1
            db.session.remove()
