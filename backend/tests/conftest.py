"""
Pytest fixtures for shiftwatch backend tests.

Provides an in-memory database, a controllable clock, directory/shift
factories and a timer registry whose timers only fire when told to.
"""

from datetime import datetime, timedelta

import pytest
from shiftwatch import create_app
from shiftwatch.extensions import db
from shiftwatch.models import Company, Employee, Shift
from shiftwatch.models.scheduling import SHIFT_SCHEDULED
from shiftwatch.services.timer_session import EXTENSION_KEY, TimerRegistry
from shiftwatch.time_utils import set_clock


DAY = datetime(2026, 10, 19)


def at(hour: int, minute: int = 0, second: int = 0) -> datetime:
    """A UTC-naive instant on the test day."""
    return DAY.replace(hour=hour, minute=minute, second=second)


class FixedClock:
    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeTimer:
    """Stands in for threading.Timer; fire() runs the callback on demand."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fired = True
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    def __init__(self):
        self.created: list[FakeTimer] = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        self.created.append(timer)
        return timer

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.created if t.started and not t.cancelled and not t.fired]


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'WATCHDOG_ENABLED': False,
        'TIMER_RESTORE_ON_START': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def clock():
    """Process clock pinned to 09:00 on the test day."""
    fixed = FixedClock(at(9))
    previous = set_clock(fixed)
    yield fixed
    set_clock(previous)


@pytest.fixture(scope='function')
def timer_factory():
    return FakeTimerFactory()


@pytest.fixture(scope='function')
def delivered():
    """Warnings that reached the user-facing callback."""
    return []


@pytest.fixture(scope='function')
def timers(app, timer_factory, delivered):
    """Swap the app's timer registry for one driven by fake timers."""
    previous = app.extensions.get(EXTENSION_KEY)
    registry = TimerRegistry(app, timer_factory=timer_factory, on_warning=delivered.append)
    yield registry
    registry.shutdown()
    app.extensions[EXTENSION_KEY] = previous


@pytest.fixture(scope='function')
def company(db_session):
    company = Company(name="Corner Bakery", is_active=True)
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def make_employee(db_session, company):
    def _make(first_name: str, last_name: str = "", company_id: int | None = None) -> Employee:
        employee = Employee(
            company_id=company_id or company.id,
            first_name=first_name,
            last_name=last_name,
            is_active=True,
        )
        db_session.add(employee)
        db_session.commit()
        return employee
    return _make


@pytest.fixture(scope='function')
def alice(make_employee):
    return make_employee("Alice", "Moreno")


@pytest.fixture(scope='function')
def bob(make_employee):
    return make_employee("Bob", "Tanaka")


@pytest.fixture(scope='function')
def carol(make_employee):
    return make_employee("Carol", "Osei")


@pytest.fixture(scope='function')
def make_shift(db_session, company):
    def _make(employee: Employee, start: datetime, hours: int = 8, status: str = SHIFT_SCHEDULED) -> Shift:
        shift = Shift(
            employee_id=employee.id,
            company_id=employee.company_id,
            start_time=start,
            end_time=start + timedelta(hours=hours),
            status=status,
            is_missed=False,
        )
        db_session.add(shift)
        db_session.commit()
        return shift
    return _make


@pytest.fixture(scope='function')
def headers_for():
    def _headers(employee) -> dict:
        return {'X-Employee-Id': str(employee.id)}
    return _headers
