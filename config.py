from __future__ import annotations
import os
from datetime import timedelta
from pathlib import Path

# Absolute project dir
BASE_DIR = Path(__file__).resolve().parent
# Absolute instance dir (defaults to <project>/instance)
INSTANCE_DIR = Path(os.getenv("INSTANCE_DIR", BASE_DIR / "instance")).resolve()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    # Flask basics
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")  # override in prod!
    TEMPLATES_AUTO_RELOAD = False
    SITE_NAME = os.getenv("SITE_NAME", "Emulators.wtf")

    # Database (absolute sqlite path; forward slashes are fine on Windows)
    DEFAULT_SQLITE = f"sqlite:///{(INSTANCE_DIR / 'database.db').as_posix()}"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", DEFAULT_SQLITE)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cookie security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")

    # Cache configuration (defaults to in-process SimpleCache)
    CACHE_DEFAULT_TIMEOUT = int(os.getenv("CACHE_DEFAULT_TIMEOUT", 600))
    CACHE_TYPE = os.getenv("CACHE_TYPE", "SimpleCache")
    CACHE_REDIS_URL = os.getenv("CACHE_REDIS_URL")
    RATELIMIT_STORAGE_URI = os.getenv(
        "RATELIMIT_STORAGE_URI",
        os.getenv("RATELIMIT_REDIS_URI") or os.getenv("REDIS_URL") or "memory://",
    )
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per minute")
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "1")
    ENABLE_TALISMAN = _env_flag("ENABLE_TALISMAN", "1")
    TALISMAN_FORCE_HTTPS = _env_flag("TALISMAN_FORCE_HTTPS", "1")
    CONTENT_SECURITY_POLICY = {
        "default-src": "'self'",
        "img-src": "'self' data: https:",
        "script-src": "'self'",
        "style-src": "'self' 'unsafe-inline'",
        "connect-src": "'self'",
        "font-src": "'self' data:",
    }

    # Compare list lives in the signed session cookie; keep it well under the ~4 KB cookie limit
    COMPARE_SESSION_QUOTA = int(os.getenv("COMPARE_SESSION_QUOTA", 2048))
    PERMANENT_SESSION_LIFETIME = timedelta(days=int(os.getenv("SESSION_LIFETIME_DAYS", 30)))

    # Listing defaults
    LISTING_PAGE_SIZES = (12, 24, 48)
    LISTING_DEFAULT_PAGE_SIZE = 12


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    TEMPLATES_AUTO_RELOAD = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


def _select_config():
    env = os.getenv("FLASK_ENV")
    if env == "development":
        return DevelopmentConfig
    secret = os.getenv("SECRET_KEY", "dev")
    if not secret or secret == "dev":
        raise RuntimeError("SECRET_KEY must be set to a non-default value in production.")
    return ProductionConfig


# Choose config
Config = _select_config()
