# tractor_sales/settings.py
from __future__ import annotations

import os


def _normalize_api_url(url: str | None) -> str | None:
    if not url:
        return None
    u = url.strip()
    if not u:
        return None
    return u.rstrip("/")


def _split_csv(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return list(default)
    items = [v.strip() for v in value.split(",")]
    return [v for v in items if v] or list(default)


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    # ======================
    # Core
    # ======================
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # ======================
    # Tractor Sales API
    # ======================
    # Priority:
    # 1) TRACTOR_API_URL (deployment)
    # 2) API_BASE_URL (manual override)
    # 3) Local default
    API_BASE_URL = (
        _normalize_api_url(os.environ.get("TRACTOR_API_URL"))
        or _normalize_api_url(os.environ.get("API_BASE_URL"))
        or "http://localhost:5000/api"
    )
    API_TIMEOUT = _int_env("API_TIMEOUT", 10)

    # Dashboard resources are fetched together on a small pool
    DASHBOARD_FETCH_WORKERS = _int_env("DASHBOARD_FETCH_WORKERS", 4)

    # ======================
    # Sales
    # ======================
    SALES_LOCATIONS = _split_csv(os.environ.get("SALES_LOCATIONS"), ["Thanjavur", "Mayiladuthurai"])
    SALES_PAGE_SIZE = _int_env("SALES_PAGE_SIZE", 20)

    # ======================
    # Session cookie (holds token + user snapshot)
    # ======================
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "").lower() in ("1", "true", "yes")

    # ======================
    # Flask-Limiter
    # ======================
    RATELIMIT_STORAGE_URI = (
        os.environ.get("LIMITER_STORAGE_URL")
        or os.environ.get("REDIS_URL")
        or "memory://"
    )
    RATELIMIT_HEADERS_ENABLED = True

    # ======================
    # Logging
    # ======================
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # ======================
    # Proxy / Gunicorn
    # ======================
    PREFERRED_URL_SCHEME = os.environ.get("PREFERRED_URL_SCHEME", "https")
