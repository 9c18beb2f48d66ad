import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    orders_cache_ttl: int
    default_page_size: int
    max_page_size: int
    csrf_enabled: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///dashflow.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        orders_cache_ttl=_getenv_int("ORDERS_CACHE_TTL", 60),
        default_page_size=_getenv_int("DEFAULT_PAGE_SIZE", 10),
        max_page_size=_getenv_int("MAX_PAGE_SIZE", 100),
        csrf_enabled=_getenv("CSRF_ENABLED", "1") not in ("0", "false", "no"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "ORDERS_CACHE_TTL": s.orders_cache_ttl,
        "DEFAULT_PAGE_SIZE": s.default_page_size,
        "MAX_PAGE_SIZE": s.max_page_size,
        "CSRF_ENABLED": s.csrf_enabled,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
    }


def production_config_errors(config: dict) -> list[str]:
    """Settings that are acceptable locally but never in production."""
    if str(config.get("ENV") or "").strip().lower() not in ("prod", "production"):
        return []
    errors = []
    db_url = str(config.get("DATABASE_URL") or "").strip()
    if not db_url or db_url.startswith("sqlite"):
        errors.append("DATABASE_URL must point at Postgres in production.")
    if str(config.get("SECRET_KEY") or "") in ("", "change-me"):
        errors.append("SECRET_KEY must be set to a strong, non-default value in production.")
    return errors
