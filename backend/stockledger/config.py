# backend/stockledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # POS sales without a reference take the next B2C/B2B series number.
    # When disabled they are numbered POS-<id> after insert instead.
    POS_USE_DOCUMENT_SERIES = _env_flag("POS_USE_DOCUMENT_SERIES", True)

    # SELECT ... FOR UPDATE on the source location before the negative-stock
    # guard. Off by default: guard+insert is optimistic (see DESIGN.md).
    LEDGER_LOCK_STOCK_GUARD = _env_flag("LEDGER_LOCK_STOCK_GUARD", False)
