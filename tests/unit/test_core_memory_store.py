"""Tests for the in-memory identity store."""
import pytest

from identity_manager.core.claim_types import NAME
from identity_manager.core.errors import NotFound, StoreValidationFailed
from identity_manager.core.memory_store import InMemoryIdentityStore
from identity_manager.core.models import Claim


def test_create_user_hashes_password():
    store = InMemoryIdentityStore()
    user = store.create_user("dave", "dave@example.com", "Secret123")
    assert user.created is not None
    assert store.check_password(user.id, "Secret123")
    assert not store.check_password(user.id, "secret123")


def test_duplicate_username_is_conflict(store):
    with pytest.raises(StoreValidationFailed) as excinfo:
        store.create_user("ALICE", "other@example.com", "Passw0rd!")
    assert excinfo.value.status == 409


def test_short_password_rejected():
    with pytest.raises(StoreValidationFailed) as excinfo:
        InMemoryIdentityStore().create_user("dave", "dave@example.com", "short")
    assert excinfo.value.status == 400


def test_reads_return_copies(store, user_id):
    user = store.get_user(user_id("alice"))
    user.role_ids.clear()
    user.claims.clear()
    assert store.get_user(user_id("alice")).role_ids
    assert store.get_user(user_id("alice")).claims


def test_delete_role_cascades_to_memberships(store, user_id, role_id):
    store.delete_role(role_id("editor"))
    assert store.get_user(user_id("bob")).role_ids == set()
    assert len(store.get_user(user_id("alice")).role_ids) == 1


def test_missing_principals():
    store = InMemoryIdentityStore()
    assert store.get_user("nope") is None
    with pytest.raises(NotFound, match="User not found."):
        store.delete_user("nope")
    with pytest.raises(NotFound, match="Role not found."):
        store.add_role_claim("nope", Claim(NAME, "x"))


def test_add_role_requires_existing_role(store, user_id):
    with pytest.raises(NotFound):
        store.add_user_role(user_id("carol"), "missing-role")


def test_claim_add_and_remove_are_set_operations(store, user_id):
    uid = user_id("carol")
    store.add_user_claim(uid, Claim(NAME, "Carol"))
    store.add_user_claim(uid, Claim(NAME, "Carol"))
    assert store.get_user(uid).claims == {Claim(NAME, "Carol")}
    store.remove_user_claim(uid, Claim(NAME, "Carol"))
    store.remove_user_claim(uid, Claim(NAME, "Carol"))
    assert store.get_user(uid).claims == set()


def test_rename_role_to_taken_name(store, role_id):
    role = store.get_role(role_id("viewer"))
    role.name = "Admin"
    with pytest.raises(StoreValidationFailed):
        store.update_role(role)
