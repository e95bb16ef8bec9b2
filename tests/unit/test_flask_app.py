"""Tests for the application factory."""
from identity_manager.bootstrap import build_store, seed_demo_data
from identity_manager.core.admin_service import AdminService
from identity_manager.core.keycloak import KeycloakIdentityStore
from identity_manager.core.memory_store import InMemoryIdentityStore
from identity_manager.flask_app import create_app


def test_demo_app_serves_seeded_users(make_config):
    app = create_app(make_config())
    client = app.test_client()
    body = client.get("/api/users", query_string={"columns[0][data]": "userName", "order[0][column]": "0"}).get_json()
    assert [row["userName"] for row in body["data"]] == ["alice", "bob", "carol"]
    assert body["data"][0]["displayName"] == "Alice Admin"


def test_service_uses_configured_search_mode(make_config, store):
    app = create_app(make_config(search_match_mode="all", max_page_length=25), store=store)
    service = app.extensions["identity_manager"]
    assert isinstance(service, AdminService)
    assert service.user_query.match == "all"
    assert service.max_page_length == 25


def test_default_page_length_from_config(make_config, store):
    app = create_app(make_config(default_page_length=2), store=store)
    body = app.test_client().get("/api/users").get_json()
    assert len(body["data"]) == 2
    assert body["recordsFiltered"] == 3


def test_memory_store_not_seeded_outside_demo(make_config):
    store = build_store(make_config(demo_mode=False))
    assert isinstance(store, InMemoryIdentityStore)
    assert store.list_users() == []


def test_seed_demo_data():
    store = InMemoryIdentityStore()
    seed_demo_data(store)
    assert sorted(r.name for r in store.list_roles()) == ["admin", "editor", "viewer"]
    assert len(store.list_users()) == 3


def test_keycloak_store_built_from_config(make_config, monkeypatch):
    calls = {}

    def fake_auth(self, realm, client_id, secret):
        calls["auth"] = (realm, client_id, secret)
        return "tok"

    from identity_manager.core.keycloak import KeycloakClient

    monkeypatch.setattr(KeycloakClient, "authenticate_service_account", fake_auth)
    store = build_store(make_config(
        identity_store="keycloak",
        keycloak_url="http://kc:8080",
        keycloak_realm="corp",
        keycloak_service_realm="master",
        keycloak_service_client_secret="svc",
    ))
    assert isinstance(store, KeycloakIdentityStore)
    assert store.realm == "corp"
    assert calls["auth"] == ("master", "automation-cli", "svc")
