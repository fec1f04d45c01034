# core/config.py
import os
from dataclasses import dataclass, replace
from typing import Optional

from core.errors import ValidationError

DEFAULT_DATABASE_URL = "sqlite:///books.db"
DEFAULT_CATALOGUE_API_URL = "https://api.hardcover.app/v1/graphql"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    catalogue_api_url: str = DEFAULT_CATALOGUE_API_URL
    catalogue_api_key: Optional[str] = None
    collection_root: Optional[str] = None
    ownership_cache_ttl: float = 3600.0
    gateway_min_interval: float = 1.0
    gateway_max_retries: int = 3
    gateway_backoff_base: float = 2.0
    gateway_timeout: float = 30.0
    log_level: str = "INFO"

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied"""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {raw!r}")


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}")


def load_settings() -> Settings:
    """Build settings from the environment"""
    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        catalogue_api_url=os.getenv("CATALOGUE_API_URL", DEFAULT_CATALOGUE_API_URL),
        catalogue_api_key=os.getenv("CATALOGUE_API_KEY") or None,
        collection_root=os.getenv("COLLECTION_ROOT") or None,
        ownership_cache_ttl=_get_float("OWNERSHIP_CACHE_TTL", 3600.0),
        gateway_min_interval=_get_float("GATEWAY_MIN_INTERVAL", 1.0),
        gateway_max_retries=_get_int("GATEWAY_MAX_RETRIES", 3),
        gateway_backoff_base=_get_float("GATEWAY_BACKOFF_BASE", 2.0),
        gateway_timeout=_get_float("GATEWAY_TIMEOUT", 30.0),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
