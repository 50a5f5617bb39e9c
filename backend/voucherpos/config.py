from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/voucherpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///voucherpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Session lifetimes (hours)
    SESSION_ABSOLUTE_HOURS = int(os.environ.get("SESSION_ABSOLUTE_HOURS", "24"))
    SESSION_IDLE_HOURS = int(os.environ.get("SESSION_IDLE_HOURS", "2"))

    # bcrypt cost factor for new password hashes
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # OTT reseller API (voucher issuing)
    OTT_API_BASE_URL = os.environ.get("OTT_API_BASE_URL")
    OTT_API_USERNAME = os.environ.get("OTT_API_USERNAME")
    OTT_API_PASSWORD = os.environ.get("OTT_API_PASSWORD")
    OTT_API_KEY = os.environ.get("OTT_API_KEY")

    # Glocell bill payments (electricity, DStv)
    GLOCELL_API_BASE_URL = os.environ.get("GLOCELL_API_BASE_URL")
    GLOCELL_API_KEY = os.environ.get("GLOCELL_API_KEY")
    GLOCELL_API_USERNAME = os.environ.get("GLOCELL_API_USERNAME")
    GLOCELL_API_PASSWORD = os.environ.get("GLOCELL_API_PASSWORD")
    GLOCELL_VENDOR_ID = os.environ.get("GLOCELL_VENDOR_ID", "000000")
    GLOCELL_DEVICE_ID = os.environ.get("GLOCELL_DEVICE_ID", "000000")

    VENDOR_TIMEOUT_SECONDS = float(os.environ.get("VENDOR_TIMEOUT_SECONDS", "30"))

    # Browser origins allowed to call the API (comma separated)
    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )
