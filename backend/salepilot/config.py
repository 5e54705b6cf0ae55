# backend/salepilot/config.py
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

    # SQLite DB stored in backend/instance/salepilot.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///salepilot.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Stock may go below zero on sale (counted back by stock takes)
    ALLOW_NEGATIVE_STOCK = _env_bool("ALLOW_NEGATIVE_STOCK", True)

    # Receiving more than ordered on a PO line is a conflict unless enabled
    ALLOW_OVER_RECEIVE = _env_bool("ALLOW_OVER_RECEIVE", False)

    # "WEIGHTED_AVERAGE" or "LAST"
    COST_METHOD = os.environ.get("COST_METHOD", "WEIGHTED_AVERAGE").upper()

    TX_RETRY_ATTEMPTS = int(os.environ.get("TX_RETRY_ATTEMPTS", "3"))
