# backend/storefront/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Local client storage (persisted credential) lives in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///storefront.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Remote marketplace API
    API_BASE_URL = os.environ.get("STOREFRONT_API_URL", "https://jamaltech.alwaysdata.net/api")
    API_TIMEOUT_SECONDS = float(os.environ.get("STOREFRONT_API_TIMEOUT", "10"))

    # Key under which the bearer credential is persisted
    CREDENTIAL_STORAGE_KEY = os.environ.get("STOREFRONT_CREDENTIAL_KEY", "jwt_token")

    # Where denied visitors are sent
    SAFE_DEFAULT_ENDPOINT = "events.list_events_route"

    # Tests turn this off to drive bootstrap by hand
    SESSION_BOOTSTRAP_ON_START = True

    CORS_ALLOWED_ORIGINS = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }
