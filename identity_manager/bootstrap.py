"""Identity store construction shared by the Flask app and the CLI."""
from __future__ import annotations

from identity_manager.config import AppConfig
from identity_manager.core.claim_types import NAME, ROLE
from identity_manager.core.memory_store import InMemoryIdentityStore
from identity_manager.core.models import Claim
from identity_manager.core.store import IdentityStore

DEMO_PASSWORD = "Demo-Passw0rd!"


def build_store(cfg: AppConfig) -> IdentityStore:
    """Instantiate the configured identity store backend."""
    if cfg.identity_store == "keycloak":
        from identity_manager.core.keycloak import KeycloakClient, KeycloakIdentityStore

        client = KeycloakClient(cfg.keycloak_url, timeout=cfg.keycloak_request_timeout)
        client.authenticate_service_account(
            cfg.keycloak_service_realm,
            cfg.keycloak_service_client_id,
            cfg.service_client_secret_resolved,
        )
        print(f"[bootstrap] Keycloak store: {cfg.keycloak_url} realm={cfg.keycloak_realm}")
        return KeycloakIdentityStore(client, cfg.keycloak_realm)

    store = InMemoryIdentityStore()
    if cfg.demo_mode:
        seed_demo_data(store)
    return store


def seed_demo_data(store: IdentityStore) -> None:
    """Populate an empty store with a handful of demo roles and accounts."""
    roles = {
        name: store.create_role(name, description)
        for name, description in (
            ("admin", "Full administrative access"),
            ("editor", "Can edit content"),
            ("viewer", "Read-only access"),
        )
    }
    store.add_role_claim(roles["admin"].id, Claim(ROLE, "admin"))

    for username, display_name, role_names in (
        ("alice", "Alice Admin", ("admin", "editor")),
        ("bob", "Bob Editor", ("editor",)),
        ("carol", "Carol Viewer", ("viewer",)),
    ):
        user = store.create_user(username, f"{username}@example.com", DEMO_PASSWORD)
        store.add_user_claim(user.id, Claim(NAME, display_name))
        for role_name in role_names:
            store.add_user_role(user.id, roles[role_name].id)
    print("[demo-mode] Seeded in-memory store: 3 roles, 3 users")
