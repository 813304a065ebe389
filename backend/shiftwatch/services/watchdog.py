# Overview: Missed-shift watchdog; periodic scan that flags no-shows exactly once.

"""
Missed-Shift Watchdog

Each tick:
1. graceThreshold = now - GRACE_PERIOD_MINUTES
2. candidates: status == scheduled, is_missed == false, start_time < threshold
3./4. per candidate, one conditional UPDATE that sets is_missed/missed_at/
   status only while no clock-in exists for the shift (see
   shift_service.mark_missed). Presence of any time entry wins.

Each candidate is its own unit of work: a failure is rolled back, logged and
the batch moves on. Re-running a tick over unchanged data changes nothing.

Ticks never overlap: a tick that finds the previous one still running is
skipped, not queued.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..extensions import db
from . import shift_service
from .errors import StoreUnavailable
from shiftwatch.time_utils import to_utc_z, utcnow

EXTENSION_KEY = "shiftwatch_watchdog"


@dataclass
class TickResult:
    started_at: datetime
    grace_minutes: int
    scanned: list[int] = field(default_factory=list)
    marked: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "started_at": to_utc_z(self.started_at),
            "grace_minutes": self.grace_minutes,
            "scanned": list(self.scanned),
            "marked": list(self.marked),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
        }


def run_tick(
    *,
    now: datetime | None = None,
    grace_minutes: int | None = None,
    company_id: int | None = None,
) -> TickResult:
    """One watchdog pass. Must run inside an app context."""
    now = now or utcnow()
    if grace_minutes is None:
        grace_minutes = int(current_app.config.get("GRACE_PERIOD_MINUTES", 15))

    result = TickResult(started_at=now, grace_minutes=grace_minutes)

    try:
        result.scanned = shift_service.find_overdue_shift_ids(
            now=now,
            grace_minutes=grace_minutes,
            company_id=company_id,
        )
    except OperationalError as exc:
        db.session.rollback()
        raise StoreUnavailable() from exc

    for shift_id in result.scanned:
        try:
            if shift_service.mark_missed(shift_id, now=now):
                result.marked.append(shift_id)
                current_app.logger.info("Shift %s marked missed", shift_id)
            else:
                result.skipped.append(shift_id)
        except SQLAlchemyError:
            db.session.rollback()
            result.failed.append(shift_id)
            current_app.logger.exception("Failed to mark shift %s as missed", shift_id)

    return result


class MissedShiftWatchdog:
    """
    Background loop around run_tick.

    Runs in a daemon thread, waiting on a stop event between ticks. The busy
    lock is acquired without blocking, so a tick that overruns the interval
    (or a manual tick racing the loop) causes the next one to be skipped.
    """

    def __init__(
        self,
        app,
        *,
        interval_seconds: float | None = None,
        grace_minutes: int | None = None,
        company_id: int | None = None,
    ):
        self.app = app
        self.interval_seconds = float(
            interval_seconds if interval_seconds is not None else app.config.get("WATCHDOG_INTERVAL_SECONDS", 60)
        )
        self.grace_minutes = grace_minutes
        self.company_id = company_id
        self._busy = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> TickResult | None:
        if not self._busy.acquire(blocking=False):
            self.app.logger.warning("Watchdog tick skipped: previous tick still running")
            return None
        try:
            with self.app.app_context():
                result = run_tick(grace_minutes=self.grace_minutes, company_id=self.company_id)
                if result.marked or result.failed:
                    self.app.logger.info(
                        "Watchdog tick: scanned=%d marked=%d failed=%d",
                        len(result.scanned), len(result.marked), len(result.failed),
                    )
                return result
        finally:
            self._busy.release()

    def run_forever(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                self.app.logger.exception("Watchdog tick failed")
            self._stop.wait(self.interval_seconds)

    def start(self) -> threading.Thread:
        if self.running:
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="missed-shift-watchdog", daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
