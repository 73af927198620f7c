# backend/pdv/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pdv.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pdv.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Maintenance timer (recurring entries + overdue marking), in seconds
    RECURRING_PROCESS_INTERVAL_SECONDS = int(os.environ.get("RECURRING_PROCESS_INTERVAL_SECONDS", "86400"))

    # "Due soon" horizon for financial alerts
    FINANCIAL_ALERT_WINDOW_DAYS = int(os.environ.get("FINANCIAL_ALERT_WINDOW_DAYS", "7"))

    LOW_STOCK_DEFAULT_LIMIT = int(os.environ.get("LOW_STOCK_DEFAULT_LIMIT", "200"))
