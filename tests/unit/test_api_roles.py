"""Tests for the /api/roles endpoints."""
from identity_manager.core.claim_types import CLAIM_TYPES
from identity_manager.core.models import Claim


def test_list_roles_search(client):
    response = client.get("/api/roles", query_string={
        "draw": "2",
        "columns[0][data]": "name",
        "order[0][column]": "0",
        "order[0][dir]": "desc",
        "search[value]": "e",
    })
    body = response.get_json()
    assert body["recordsTotal"] == 3
    assert body["recordsFiltered"] == 2
    assert [row["name"] for row in body["data"]] == ["viewer", "editor"]


def test_role_options(client, role_id):
    response = client.get("/api/roles/options")
    assert response.status_code == 200
    assert list(response.get_json().items()) == [
        (role_id("admin"), "admin"),
        (role_id("editor"), "editor"),
        (role_id("viewer"), "viewer"),
    ]


def test_create_role(client, store):
    response = client.post("/api/roles", data={"name": "auditor"})
    assert response.status_code == 204
    assert any(r.name == "auditor" for r in store.list_roles())


def test_create_duplicate_role(client):
    assert client.post("/api/roles", json={"name": "Admin"}).status_code == 409


def test_update_role_claims(client, store, role_id):
    rid = role_id("viewer")
    response = client.put(f"/api/roles/{rid}", json={
        "name": "reader",
        "claims": [["Role", "reader"]],
    })
    assert response.status_code == 204
    role = store.get_role(rid)
    assert role.name == "reader"
    assert role.claims == {Claim(CLAIM_TYPES.canonical_of("Role"), "reader")}


def test_update_role_blank_claims_field_clears(client, store, role_id):
    rid = role_id("admin")
    store.add_role_claim(rid, Claim(CLAIM_TYPES.canonical_of("Role"), "admin"))
    response = client.post(f"/api/roles/{rid}", data={"name": "admin", "claims": ""})
    assert response.status_code == 204
    assert store.get_role(rid).claims == set()


def test_update_missing_role(client):
    response = client.put("/api/roles/missing", json={"name": "x"})
    assert response.status_code == 404
    assert response.get_json()["message"] == "Role not found."


def test_delete_role(client, store, role_id, user_id):
    rid = role_id("editor")
    assert client.delete(f"/api/roles/{rid}").status_code == 204
    assert store.get_role(rid) is None
    assert store.get_user(user_id("bob")).role_ids == set()
