# backend/pos_engine/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pos_engine.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos_engine.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Re-check stock under lock at checkout and refuse to oversell.
    # When False, a shortfall is only logged and stock is floored at zero.
    POS_STRICT_STOCK_CHECK = _env_bool("POS_STRICT_STOCK_CHECK", True)

    # Fallbacks for tenants created without explicit settings
    POS_DEFAULT_TAX_RATE_BPS = int(os.environ.get("POS_DEFAULT_TAX_RATE_BPS", "1000"))  # 10%
    POS_DEFAULT_MAX_ORDERS = int(os.environ.get("POS_DEFAULT_MAX_ORDERS", "100"))

    POS_PAYMENT_METHODS = tuple(
        m.strip().upper()
        for m in os.environ.get("POS_PAYMENT_METHODS", "CASH,CARD,MOBILE").split(",")
        if m.strip()
    )
