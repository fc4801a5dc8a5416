# Overview: Locking, guarded updates and retry helpers shared by the write paths.

from __future__ import annotations

import time

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking before a read-modify-write.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the guarded update below is
    what keeps payouts single-shot there.
    """
    return query.with_for_update()


def guarded_update(model, *criteria, values: dict) -> int:
    """
    Issue UPDATE model SET values WHERE criteria and return the matched row count.

    The WHERE clause carries the precondition, so two writers racing on the
    same row cannot both match. Models with a version counter get it bumped
    here, keeping optimistic locks of in-flight ORM sessions honest.
    """
    version_col = getattr(model, "version_id", None)
    if version_col is not None and "version_id" not in values:
        values = dict(values, version_id=version_col + 1)

    stmt = (
        update(model)
        .where(*criteria)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (locked database, deadlocks) and StaleDataError
    (version_id conflicts). Domain errors propagate on the first attempt.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
