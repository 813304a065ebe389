# Overview: Per-employee timer engine; wraps timekeeping operations and keeps break warnings armed.

"""
Timer Engine

State per employee is whatever the durable store says: idle (no active
entry), working, or on_break. Nothing is cached between calls; restore()
exists to re-arm the break warning in a fresh process, not to rebuild
elapsed time, which is always derived on read.

The registry restores an employee the first time this process touches
them, and at app start unless TIMER_RESTORE_ON_START is turned off.
"""

from __future__ import annotations

import threading

from flask import current_app, has_app_context

from ..models.timekeeping import STATE_IDLE
from . import timekeeping_service
from .break_alerts import DEFAULT_LEAD_MINUTES, SUPPRESSED, BreakWarning, BreakWarningScheduler, warning_for
from .timekeeping_service import TimerSnapshot
from shiftwatch.time_utils import utcnow

EXTENSION_KEY = "shiftwatch_timers"


def _lead_minutes() -> int:
    return int(current_app.config.get("BREAK_WARNING_LEAD_MINUTES", DEFAULT_LEAD_MINUTES))


class TimerEngine:
    def __init__(self, employee_id: int, *, scheduler: BreakWarningScheduler, on_active=None, on_idle=None):
        self.employee_id = employee_id
        self._scheduler = scheduler
        self._on_active = on_active
        self._on_idle = on_idle

    def restore(self) -> TimerSnapshot:
        """Resume from the durable active entry (if any) and re-arm its break warning."""
        entry = timekeeping_service.get_active_entry(self.employee_id)
        self._arm(entry)
        return timekeeping_service.snapshot(entry, now=utcnow())

    def clock_in(self, shift_id: int | None = None, notes: str | None = None):
        entry = timekeeping_service.clock_in(employee_id=self.employee_id, shift_id=shift_id, notes=notes)
        if self._on_active is not None:
            self._on_active(self)
        return entry

    def start_break(self, duration_minutes):
        entry = timekeeping_service.start_break(employee_id=self.employee_id, duration_minutes=duration_minutes)
        self._arm(entry)
        return entry

    def end_break(self):
        entry = timekeeping_service.end_break(employee_id=self.employee_id)
        self._scheduler.cancel(entry.id)
        return entry

    def clock_out(self):
        entry = timekeeping_service.clock_out(employee_id=self.employee_id)
        self._scheduler.cancel(entry.id)
        if self._on_idle is not None:
            self._on_idle(self.employee_id)
        return entry

    def status(self) -> TimerSnapshot:
        return timekeeping_service.get_current_status(self.employee_id)

    def _arm(self, entry) -> str:
        warning = warning_for(entry, lead_minutes=_lead_minutes())
        if warning is None:
            if entry is not None:
                self._scheduler.cancel(entry.id)
            return SUPPRESSED
        return self._scheduler.schedule(warning, now=utcnow())


class TimerRegistry:
    """
    Process-wide home of the timer engines and their shared warning scheduler.

    Delivery runs the durable "shown" claim inside an app context and only
    calls `on_warning` for the process that won the claim.
    """

    def __init__(self, app=None, *, timer_factory=None, on_warning=None):
        self.app = None
        self._on_warning = on_warning
        self._engines: dict[int, TimerEngine] = {}
        self._lock = threading.Lock()
        self.scheduler = BreakWarningScheduler(self._deliver, timer_factory=timer_factory or threading.Timer)
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.app = app
        app.extensions[EXTENSION_KEY] = self

    def engine(self, employee_id: int) -> TimerEngine:
        """
        Engine for one employee.

        The first call in this process restores from the stored active entry,
        so a pending break warning is re-armed (or fired) before anything else
        happens. Only engines of clocked-in employees are kept.
        """
        engine, created = self._get_or_create(employee_id)
        if created:
            try:
                self._restore(engine)
            except Exception:
                self._evict(employee_id)
                raise
        return engine

    def restore_all(self) -> int:
        """Re-arm every active entry; returns how many employees were restored."""
        employee_ids = {e.employee_id for e in timekeeping_service.list_active_entries()}
        for employee_id in employee_ids:
            engine, _ = self._get_or_create(employee_id)
            self._restore(engine)
        return len(employee_ids)

    def tracked(self) -> set[int]:
        with self._lock:
            return set(self._engines)

    def _get_or_create(self, employee_id: int) -> tuple[TimerEngine, bool]:
        with self._lock:
            engine = self._engines.get(employee_id)
            if engine is not None:
                return engine, False
            engine = TimerEngine(
                employee_id, scheduler=self.scheduler, on_active=self._track, on_idle=self._evict,
            )
            self._engines[employee_id] = engine
            return engine, True

    def _restore(self, engine: TimerEngine) -> TimerSnapshot:
        snapshot = engine.restore()
        if snapshot.state == STATE_IDLE:
            self._evict(engine.employee_id)
        return snapshot

    def _track(self, engine: TimerEngine) -> None:
        with self._lock:
            self._engines.setdefault(engine.employee_id, engine)

    def _evict(self, employee_id: int) -> None:
        with self._lock:
            self._engines.pop(employee_id, None)

    def shutdown(self) -> None:
        self.scheduler.shutdown()

    def _deliver(self, warning: BreakWarning) -> None:
        if has_app_context() and current_app._get_current_object() is self.app:
            self._deliver_in_context(warning)
            return
        with self.app.app_context():
            self._deliver_in_context(warning)

    def _deliver_in_context(self, warning: BreakWarning) -> None:
        # The break itself is already committed; a failed delivery is logged, not raised.
        try:
            self._claim_and_notify(warning)
        except Exception:
            current_app.logger.exception("Failed to deliver break warning for entry %s", warning.entry_id)

    def _claim_and_notify(self, warning: BreakWarning) -> None:
        claimed = timekeeping_service.mark_break_warning_shown(
            entry_id=warning.entry_id,
            break_start=warning.break_start,
        )
        if not claimed:
            return
        current_app.logger.info(
            "Break ending soon: employee=%s entry=%s ends_at=%s",
            warning.employee_id, warning.entry_id, warning.break_ends_at.isoformat(),
        )
        if self._on_warning is not None:
            self._on_warning(warning)


def get_registry() -> TimerRegistry:
    return current_app.extensions[EXTENSION_KEY]


def get_engine(employee_id: int) -> TimerEngine:
    return get_registry().engine(employee_id)
