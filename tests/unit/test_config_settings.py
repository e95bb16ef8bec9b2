"""Tests for environment-driven settings."""
import pytest

from identity_manager.config import settings

ENV_KEYS = (
    "DEMO_MODE", "FLASK_SECRET_KEY", "TRUSTED_PROXY_IPS", "IDENTITY_STORE", "KEYCLOAK_URL",
    "KEYCLOAK_REALM", "KEYCLOAK_SERVICE_REALM", "KEYCLOAK_SERVICE_CLIENT_SECRET",
    "SEARCH_MATCH_MODE", "DEFAULT_PAGE_LENGTH", "MAX_PAGE_LENGTH", "LOG_LEVEL",
    "AUDIT_LOG_SIGNING_KEY", "AUDIT_LOG_DIR",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)

    real_path = settings.Path

    def fake_path(target, *rest):
        if str(target) == "/run/secrets":
            return tmp_path
        return real_path(target, *rest)

    monkeypatch.setattr(settings, "Path", fake_path)
    return tmp_path


def test_demo_mode_defaults(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    cfg = settings.load_settings()
    assert cfg.demo_mode is True
    assert cfg.secret_key
    assert cfg.identity_store == "memory"
    assert cfg.search_match_mode == "any"
    assert cfg.default_page_length == 10
    assert cfg.max_page_length == 500
    assert cfg.audit_log_signing_key


def test_production_requires_secret_key():
    with pytest.raises(RuntimeError, match="FLASK_SECRET_KEY"):
        settings.load_settings()


def test_production_requires_keycloak_settings(monkeypatch):
    monkeypatch.setenv("FLASK_SECRET_KEY", "s3cret")
    monkeypatch.setenv("TRUSTED_PROXY_IPS", "10.0.0.0/8")
    with pytest.raises(RuntimeError, match="KEYCLOAK_URL"):
        settings.load_settings()

    monkeypatch.setenv("KEYCLOAK_URL", "https://kc.example.com/")
    with pytest.raises(RuntimeError, match="KEYCLOAK_SERVICE_CLIENT_SECRET"):
        settings.load_settings()

    monkeypatch.setenv("KEYCLOAK_SERVICE_CLIENT_SECRET", "svc")
    cfg = settings.load_settings()
    assert cfg.identity_store == "keycloak"
    assert cfg.keycloak_url == "https://kc.example.com"
    assert cfg.service_client_secret_resolved == "svc"


def test_secret_read_from_run_secrets(monkeypatch, clean_env):
    (clean_env / "flask_secret_key").write_text("file-secret\n")
    monkeypatch.setenv("IDENTITY_STORE", "memory")
    cfg = settings.load_settings()
    assert cfg.secret_key == "file-secret"


@pytest.mark.parametrize("name,value", [
    ("SEARCH_MATCH_MODE", "some"),
    ("IDENTITY_STORE", "ldap"),
    ("MAX_PAGE_LENGTH", "lots"),
    ("DEFAULT_PAGE_LENGTH", "0"),
    ("LOG_LEVEL", "LOUD"),
])
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError, match=name):
        settings.load_settings()


def test_default_length_cannot_exceed_max(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("DEFAULT_PAGE_LENGTH", "50")
    monkeypatch.setenv("MAX_PAGE_LENGTH", "20")
    with pytest.raises(RuntimeError):
        settings.load_settings()


def test_search_mode_all(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("SEARCH_MATCH_MODE", "all")
    assert settings.load_settings().search_match_mode == "all"


def test_service_secret_missing_outside_demo():
    cfg = settings.AppConfig(demo_mode=False, secret_key="x")
    with pytest.raises(ValueError):
        cfg.service_client_secret_resolved
