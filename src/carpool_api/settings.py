"""
Environment-driven configuration for the carpool backend.

Required:
- DATABASE_URL: database connection string (Postgres in production)
- JWT_SECRET_KEY: secret used to sign access tokens

Optional:
- JWT_ALGORITHM (default HS256)
- ACCESS_TOKEN_EXPIRE_MINUTES (default 60)
- SEARCH_TIMEZONE (default Europe/Paris): reference timezone for "today" and
  "current year" checks during ride search
- SEARCH_PAGE_SIZE (default 18), SEARCH_FUTURE_LIMIT (default 6)
- SEARCH_MAX_PAGE (default 10000): highest page number a search accepts
- THUMBNAIL_WIDTH (default 100): driver photo thumbnail width in pixels
- LOG_LEVEL (default INFO)
- CORS_ALLOW_ORIGINS (default "*", comma separated)
- AUTO_CREATE_TABLES (default false): create tables at startup
"""

import os
from typing import List


def _require_env(name: str) -> str:
    """Read a required environment variable or raise a clear error."""
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable: {name}. "
            "Please set it in the carpool_backend .env."
        )
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _normalize_database_url(url: str) -> str:
    """
    Normalize DATABASE_URL to a SQLAlchemy-compatible URL.

    Notes:
    - Some platforms provide 'postgres://...' which SQLAlchemy expects as
      'postgresql://...'.
    """
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


DATABASE_URL = _normalize_database_url(_require_env("DATABASE_URL"))

JWT_SECRET_KEY = _require_env("JWT_SECRET_KEY")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

SEARCH_TIMEZONE = os.getenv("SEARCH_TIMEZONE", "Europe/Paris")
SEARCH_PAGE_SIZE = int(os.getenv("SEARCH_PAGE_SIZE", "18"))
SEARCH_FUTURE_LIMIT = int(os.getenv("SEARCH_FUTURE_LIMIT", "6"))
SEARCH_MAX_PAGE = int(os.getenv("SEARCH_MAX_PAGE", "10000"))
THUMBNAIL_WIDTH = int(os.getenv("THUMBNAIL_WIDTH", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ALLOW_ORIGINS = _split_origins(os.getenv("CORS_ALLOW_ORIGINS", "*"))
AUTO_CREATE_TABLES = _env_bool("AUTO_CREATE_TABLES")
