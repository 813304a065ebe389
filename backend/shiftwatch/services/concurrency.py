# Overview: Locking helpers for the operations that race (approval, missed marking, clock-in).

from __future__ import annotations

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from .errors import EntryChanged, StoreUnavailable


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The conditional updates below keep SQLite correct on their own.
    """
    return query.with_for_update()


def compare_and_set(model, criteria, values: dict) -> bool:
    """
    Single conditional UPDATE: apply `values` to rows matching `criteria`.

    Returns True when at least one row changed. The caller owns the
    transaction; a False result means another writer got there first.
    """
    updated = (
        db.session.query(model)
        .filter(*criteria)
        .update(values, synchronize_session=False)
    )
    return updated > 0


def commit_or_raise():
    """
    Commit the current unit of work, translating concurrency failures.

    No retry: a retried clock-in or approval could apply its side effects
    twice.
    """
    try:
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise EntryChanged() from exc
    except OperationalError as exc:
        db.session.rollback()
        raise StoreUnavailable() from exc
