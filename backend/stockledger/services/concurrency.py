# Overview: Transaction boundary and row-locking helpers for ledger mutations.

from __future__ import annotations

from flask import current_app

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func):
    """
    Execute a ledger mutation as one DB transaction.

    Commits when func returns; on any exception rolls back every staged
    write (move, lines, series increment, audit event) and re-raises.
    No retry: callers re-submit.
    """
    try:
        result = func()
        db.session.commit()
        return result
    except Exception:
        db.session.rollback()
        raise


def stock_guard_lock_enabled() -> bool:
    return bool(current_app.config.get("LEDGER_LOCK_STOCK_GUARD", False))
