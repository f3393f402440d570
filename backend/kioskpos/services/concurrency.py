# Overview: Retry and row-locking helpers shared by the write workflows.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for read-modify-write steps.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; stock counters are additionally
    protected by guarded UPDATE statements (see sales_service).
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run one whole transaction, retrying on lock contention.

    Retries on OperationalError ("database is locked", deadlocks) and
    StaleDataError. Any other error rolls the session back and propagates
    unretried. func must be safe to re-run from the top: every attempt starts
    from a rolled-back session.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
