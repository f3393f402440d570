# backend/kioskpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/kioskpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kioskpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Object storage root; buckets are sub-directories. Relative paths resolve
    # against the Flask instance folder.
    STORAGE_ROOT = os.environ.get("STORAGE_ROOT", "storage")
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

    # Factory stock: "unlimited" writes a nominal stock value and never
    # decrements it; "finite" tracks and decrements a real counter.
    FACTORY_STOCK_POLICY = os.environ.get("FACTORY_STOCK_POLICY", "unlimited").lower()
    FACTORY_NOMINAL_STOCK = 999999

    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
    REPLENISH_TARGET = int(os.environ.get("REPLENISH_TARGET", "50"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Seconds an idle event stream waits before sending a keep-alive comment
    REALTIME_KEEPALIVE_SECONDS = float(os.environ.get("REALTIME_KEEPALIVE_SECONDS", "15"))
