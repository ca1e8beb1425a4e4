"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_BACKENDS = {"supabase", "postgres"}


class ConfigError(RuntimeError):
    """Raised when a configuration value is present but unusable."""


@dataclass(frozen=True)
class Settings:
    store_backend: str = "supabase"
    supabase_url: str = ""
    supabase_key: str = ""
    database_url: str = ""
    table_name: str = "signage_businesses"
    batch_size: int = 1000
    site_base_url: str = "https://atozofsigns.co.uk"
    home_city_limit: int = 24
    http_timeout: float = 10.0
    http_max_retries: int = 0
    port: int = 8080


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    store_backend = os.getenv("STORE_BACKEND", "supabase").strip().lower()
    if store_backend not in _BACKENDS:
        raise ConfigError(f"STORE_BACKEND must be one of {sorted(_BACKENDS)}, got {store_backend!r}")

    supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
    supabase_key = os.getenv("SUPABASE_KEY", "")
    database_url = os.getenv("DATABASE_URL", "")
    table_name = os.getenv("DIRECTORY_TABLE", "signage_businesses").strip() or "signage_businesses"
    site_base_url = os.getenv("SITE_BASE_URL", "https://atozofsigns.co.uk").rstrip("/")

    if store_backend == "supabase":
        if not supabase_url:
            logger.warning("SUPABASE_URL is not set; directory queries will fail.")
        if not supabase_key:
            logger.warning("SUPABASE_KEY is not configured; PostgREST requests will be rejected.")
    elif not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")

    return Settings(
        store_backend=store_backend,
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        database_url=database_url,
        table_name=table_name,
        batch_size=_int_env("FETCH_BATCH_SIZE", 1000, minimum=1),
        site_base_url=site_base_url,
        home_city_limit=_int_env("HOME_CITY_LIMIT", 24, minimum=1),
        http_timeout=_float_env("HTTP_TIMEOUT_SECONDS", 10.0),
        http_max_retries=_int_env("HTTP_MAX_RETRIES", 0),
        port=_int_env("PORT", 8080, minimum=1),
    )
