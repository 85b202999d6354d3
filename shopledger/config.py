# shopledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_seconds(name: str) -> float | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in instance/shopledger.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///shopledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Audit trail is optional; failures never reach the caller either way
    AUDIT_ENABLED = _env_flag("AUDIT_ENABLED", True)

    # False: item transaction and its ledger entries commit together or not at all.
    # True: ledger failures are downgraded to a warning and the sale is kept.
    ITEM_LEDGER_BEST_EFFORT = _env_flag("ITEM_LEDGER_BEST_EFFORT", False)

    # Per-operation deadline in seconds (None = unlimited)
    OPERATION_TIMEOUT_SECONDS = _env_seconds("OPERATION_TIMEOUT_SECONDS")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    AUDIT_ENABLED = True
    ITEM_LEDGER_BEST_EFFORT = False
    OPERATION_TIMEOUT_SECONDS = None
