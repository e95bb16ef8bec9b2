"""Pytest shared fixtures."""
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("IDENTITY_STORE", "memory")
os.environ.setdefault("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")

import pytest
import requests

from identity_manager import audit
from identity_manager.config.settings import AppConfig
from identity_manager.core.admin_service import AdminService
from identity_manager.core.claim_types import NAME
from identity_manager.core.memory_store import InMemoryIdentityStore
from identity_manager.core.models import Claim
from identity_manager.flask_app import create_app


# ─────────────────────────────────────────────────────────────────────────────
# Guard Rails
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _no_network(monkeypatch, request):
    """
    Prevent unit tests from reaching a live Keycloak.

    Integration tests are explicitly marked with @pytest.mark.integration and
    are allowed to perform real HTTP calls by skipping this fixture.
    """
    if request.node.get_closest_marker("integration"):
        return

    def _blocked(method, url, *args, **kwargs):
        raise requests.ConnectionError(f"Network access blocked in unit tests: {method} {url}")

    monkeypatch.setattr(requests, "request", _blocked)
    monkeypatch.setattr(requests, "post", lambda url, *a, **kw: _blocked("POST", url))


@pytest.fixture(autouse=True)
def audit_log(monkeypatch, tmp_path):
    """Isolated audit trail per test; yields the log file path."""
    audit_dir = tmp_path / "audit"
    audit_file = audit_dir / "admin-events.jsonl"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_file)
    monkeypatch.setattr(audit, "_configured_key", "test-signing-key-for-audit-trail")
    yield audit_file


# ─────────────────────────────────────────────────────────────────────────────
# Store / Service
# ─────────────────────────────────────────────────────────────────────────────
def _make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=True,
        secret_key="test-secret",
        trusted_proxy_ips="127.0.0.1/32,::1/128",
        identity_store="memory",
        audit_log_dir="",
        audit_log_signing_key="test-signing-key-for-audit-trail",
    )
    base.update(overrides)
    return AppConfig(**base)


@pytest.fixture
def store():
    """In-memory store with three roles and three users.

    Users:  alice (admin, editor; Name=Alice Admin), bob (editor), carol (no roles)
    """
    s = InMemoryIdentityStore()
    admin = s.create_role("admin", "Administrators")
    editor = s.create_role("editor")
    s.create_role("viewer")

    alice = s.create_user("alice", "alice@example.com", "Passw0rd!")
    s.add_user_claim(alice.id, Claim(NAME, "Alice Admin"))
    s.add_user_role(alice.id, admin.id)
    s.add_user_role(alice.id, editor.id)

    bob = s.create_user("bob", "bob@example.org", "Passw0rd!")
    s.add_user_role(bob.id, editor.id)

    s.create_user("carol", "carol@example.com", "Passw0rd!")
    return s


@pytest.fixture
def make_config():
    return _make_config


@pytest.fixture
def user_id(store):
    """Look up a seeded user id by username."""
    return lambda username: next(u.id for u in store.list_users() if u.username == username)


@pytest.fixture
def role_id(store):
    """Look up a seeded role id by name."""
    return lambda name: next(r.id for r in store.list_roles() if r.name == name)


@pytest.fixture
def service(store):
    return AdminService(store)


# ─────────────────────────────────────────────────────────────────────────────
# Flask
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture
def app(store):
    application = create_app(_make_config(), store=store)
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client
