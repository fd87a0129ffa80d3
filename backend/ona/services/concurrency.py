# Overview: Transaction helpers shared by the services (retried units of work, atomic blocks).

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import translate_integrity_error
from ..extensions import db


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError (optimistic locking conflicts). The rollback discards
    pending changes, so func must redo the whole unit of work, commit included.
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


@contextmanager
def atomic(conflict_message: str = "Conflicting change", *, commit: bool = True):
    """
    Run a block of writes as one unit.

    commit=True: commit at the end, roll back on any error.
    commit=False: only flush; the caller (e.g. a batch savepoint) owns the
    transaction and its rollback.

    IntegrityError is re-raised as ConflictError in both modes.
    """
    try:
        yield
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except IntegrityError as exc:
        if commit:
            db.session.rollback()
        raise translate_integrity_error(exc, conflict_message) from exc
    except Exception:
        if commit:
            db.session.rollback()
        raise
