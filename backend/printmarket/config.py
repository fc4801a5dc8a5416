# backend/printmarket/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/printmarket.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///printmarket.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Single settlement currency for the deployment
    CURRENCY = os.environ.get("CURRENCY", "PHP")

    # Share of the design fee released to the designer (100 = full fee)
    DESIGNER_PAYOUT_PERCENT = int(os.environ.get("DESIGNER_PAYOUT_PERCENT", "100"))

    # Customer rejections allowed before a request is closed as rejected
    MAX_DESIGN_REVISIONS = int(os.environ.get("MAX_DESIGN_REVISIONS", "3"))

    # Ledger reads: fan out independent repository queries on worker threads
    LEDGER_PARALLEL_READS = _env_bool("LEDGER_PARALLEL_READS", True)
    LEDGER_READ_WORKERS = int(os.environ.get("LEDGER_READ_WORKERS", "4"))

    # Shown on history rows built from earnings records
    DEFAULT_PAYMENT_METHOD = os.environ.get("DEFAULT_PAYMENT_METHOD", "xendit")

    # Browser origins allowed to call the API directly (comma separated)
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if o.strip()
    )

    # Operator accounts allowed to inspect and release any escrow (comma separated user ids)
    ESCROW_OPERATOR_USERS = tuple(
        u.strip()
        for u in os.environ.get("ESCROW_OPERATOR_USERS", "").split(",")
        if u.strip()
    )
