import pytest
from core.config import load_settings, Settings, DEFAULT_DATABASE_URL
from core.errors import ValidationError

def test_defaults(monkeypatch):
    for name in ("DATABASE_URL", "COLLECTION_ROOT", "CATALOGUE_API_KEY", "GATEWAY_MAX_RETRIES",
                 "GATEWAY_MIN_INTERVAL", "OWNERSHIP_CACHE_TTL"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.collection_root is None
    assert settings.catalogue_api_key is None
    assert settings.gateway_min_interval == 1.0
    assert settings.gateway_max_retries == 3
    assert settings.gateway_backoff_base == 2.0
    assert settings.ownership_cache_ttl == 3600.0

def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///other.db")
    monkeypatch.setenv("COLLECTION_ROOT", "/srv/books")
    monkeypatch.setenv("GATEWAY_MAX_RETRIES", "5")

    settings = load_settings()

    assert settings.database_url == "sqlite:///other.db"
    assert settings.collection_root == "/srv/books"
    assert settings.gateway_max_retries == 5

def test_bad_number_names_the_variable(monkeypatch):
    monkeypatch.setenv("GATEWAY_MIN_INTERVAL", "soon")

    with pytest.raises(ValidationError, match="GATEWAY_MIN_INTERVAL"):
        load_settings()

def test_with_overrides_ignores_none():
    settings = Settings(database_url="sqlite:///a.db")

    updated = settings.with_overrides(database_url=None, collection_root="/books")

    assert updated.database_url == "sqlite:///a.db"
    assert updated.collection_root == "/books"
