# Overview: Transaction, locking and retry helpers shared by every orchestrator.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Ledger rows also carry version_id, so a lost update surfaces as
    StaleDataError at flush time even where the lock is a no-op.
    """
    return query.with_for_update()


def _default_attempts() -> int:
    return int(current_app.config.get("TX_RETRY_ATTEMPTS", 3))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Business errors propagate untouched.
    """
    if attempts is None:
        attempts = _default_attempts()
    attempts = max(1, attempts)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Concurrency conflict (%s), retrying attempt %d/%d",
                type(exc).__name__, attempt + 2, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))


def run_in_transaction(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Run func as one unit of work: commit on success, roll back on any error.

    func must (re)load everything it touches, since a retry starts from a
    rolled-back session.
    """
    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
