# backend/backoffice/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/backoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///backoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Minimum role permissions_level allowed to void sales, sale items and orders
    VOID_MIN_PERMISSION_LEVEL = int(os.environ.get("VOID_MIN_PERMISSION_LEVEL", "800"))

    # payment_method prefix that marks a sale as paid from a tab ("tab14", "tab:14")
    TAB_PAYMENT_PREFIX = os.environ.get("TAB_PAYMENT_PREFIX", "tab")

    # When False, a sale that would take stock below zero is rejected
    ALLOW_NEGATIVE_STOCK = _env_flag("ALLOW_NEGATIVE_STOCK", False)

    TRANSACTION_RETRY_ATTEMPTS = int(os.environ.get("TRANSACTION_RETRY_ATTEMPTS", "3"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "12"))
