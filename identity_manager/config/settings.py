"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

STORE_BACKENDS = ("memory", "keycloak")
SEARCH_MATCH_MODES = ("any", "all")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, str(default)).strip().lower() == "true"


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got '{raw}'") from None
    if value < minimum:
        raise RuntimeError(f"Environment variable {name} must be >= {minimum}, got {value}")
    return value


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    value = os.environ.get(name, default).strip() or default
    if value not in choices:
        raise RuntimeError(f"Environment variable {name} must be one of {', '.join(choices)}, got '{value}'")
    return value


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Flask
    secret_key: str
    trusted_proxy_ips: str = "127.0.0.1/32,::1/128"
    log_level: str = "INFO"

    # Identity store
    identity_store: str = "memory"
    keycloak_url: str = ""
    keycloak_realm: str = "demo"
    keycloak_service_realm: str = "demo"
    keycloak_service_client_id: str = "automation-cli"
    keycloak_service_client_secret: str = ""
    keycloak_request_timeout: int = 5

    # Query engine
    search_match_mode: str = "any"
    default_page_length: int = 10
    max_page_length: int = 500

    # Audit
    audit_log_dir: str = ".runtime/audit"
    audit_log_signing_key: str = ""

    @property
    def service_client_secret_resolved(self) -> str:
        """Get Keycloak service account client secret.

        Raises:
            ValueError: If the Keycloak backend is selected without a secret
        """
        if self.keycloak_service_client_secret:
            return self.keycloak_service_client_secret
        if self.demo_mode:
            return "demo-service-secret"
        raise ValueError(
            "KEYCLOAK_SERVICE_CLIENT_SECRET not found. "
            "Set DEMO_MODE=true or provide secret via Docker secrets or environment variable."
        )


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        print(f"[demo-mode] Using default for {var_name}")
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_bool("DEMO_MODE", False)

    # Flask secret key
    secret_key = _load_secret_from_file("flask_secret_key", "FLASK_SECRET_KEY")
    if not secret_key:
        if not demo_mode:
            raise RuntimeError("FLASK_SECRET_KEY not found in /run/secrets or environment")
        secret_key = secrets.token_urlsafe(48)
        print("[demo-mode] Generated temporary FLASK_SECRET_KEY")

    # Trusted proxies
    trusted_proxy_ips = os.environ.get("TRUSTED_PROXY_IPS")
    if not trusted_proxy_ips:
        is_testing = os.environ.get("PYTEST_CURRENT_TEST") is not None
        if demo_mode or is_testing:
            trusted_proxy_ips = "127.0.0.1/32,::1/128"
        else:
            raise RuntimeError("TRUSTED_PROXY_IPS is required when DEMO_MODE is false.")

    log_level = _env_choice("LOG_LEVEL", LOG_LEVELS, "INFO")

    # Identity store backend: in-memory for demos, Keycloak otherwise
    identity_store = _env_choice("IDENTITY_STORE", STORE_BACKENDS, "memory" if demo_mode else "keycloak")

    keycloak_url = ""
    keycloak_realm = os.environ.get("KEYCLOAK_REALM", "demo")
    keycloak_service_realm = os.environ.get("KEYCLOAK_SERVICE_REALM", keycloak_realm)
    keycloak_service_client_id = os.environ.get("KEYCLOAK_SERVICE_CLIENT_ID", "automation-cli")
    keycloak_service_client_secret = _load_secret_from_file(
        "keycloak_service_client_secret",
        "KEYCLOAK_SERVICE_CLIENT_SECRET",
    ) or ""
    if identity_store == "keycloak":
        keycloak_url = _get_or_generate(
            "KEYCLOAK_URL",
            demo_default="http://127.0.0.1:8080",
            demo_mode=demo_mode,
        ).rstrip("/")
        if not keycloak_service_client_secret and not demo_mode:
            raise RuntimeError("KEYCLOAK_SERVICE_CLIENT_SECRET is required when IDENTITY_STORE=keycloak.")

    search_match_mode = _env_choice("SEARCH_MATCH_MODE", SEARCH_MATCH_MODES, "any")
    default_page_length = _env_int("DEFAULT_PAGE_LENGTH", 10)
    max_page_length = _env_int("MAX_PAGE_LENGTH", 500)
    if default_page_length > max_page_length:
        raise RuntimeError("DEFAULT_PAGE_LENGTH must not exceed MAX_PAGE_LENGTH.")

    # Audit
    audit_log_signing_key = _load_secret_from_file("audit_log_signing_key", "AUDIT_LOG_SIGNING_KEY") or ""
    if not audit_log_signing_key and demo_mode:
        audit_log_signing_key = os.environ.get("AUDIT_LOG_SIGNING_KEY_DEMO", "demo-audit-signing-key-change-in-production")
        print(f"[demo-mode] Using demo AUDIT_LOG_SIGNING_KEY: {audit_log_signing_key[:20]}...")

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(f"[settings] Mode={mode_label}; store={identity_store}; realm={keycloak_realm}; search={search_match_mode}")

    if demo_mode:
        print("[settings] WARNING: Demo credentials in use. Do not deploy with these defaults.")

    return AppConfig(
        demo_mode=demo_mode,
        secret_key=secret_key,
        trusted_proxy_ips=trusted_proxy_ips,
        log_level=log_level,
        identity_store=identity_store,
        keycloak_url=keycloak_url,
        keycloak_realm=keycloak_realm,
        keycloak_service_realm=keycloak_service_realm,
        keycloak_service_client_id=keycloak_service_client_id,
        keycloak_service_client_secret=keycloak_service_client_secret,
        keycloak_request_timeout=_env_int("KEYCLOAK_REQUEST_TIMEOUT", 5),
        search_match_mode=search_match_mode,
        default_page_length=default_page_length,
        max_page_length=max_page_length,
        audit_log_dir=os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"),
        audit_log_signing_key=audit_log_signing_key,
    )
