"""Tests for the admin service layer (projection, reconciliation, audit)."""
import json

import pytest

from identity_manager.core.admin_service import AdminService, OperationContext
from identity_manager.core.claim_types import CLAIM_TYPES, NAME
from identity_manager.core.errors import (
    InvalidInput,
    InvalidPageRequest,
    NotFound,
    PartialUpdateError,
    StoreUnavailable,
    StoreValidationFailed,
    UnknownClaimType,
)
from identity_manager.core.models import Claim
from identity_manager.core.query import PageRequest


def read_events(audit_file):
    return [json.loads(line) for line in audit_file.read_text().splitlines() if line.strip()]


# ─────────────────────────────────────────────────────────────────────────────
# Listing / projection
# ─────────────────────────────────────────────────────────────────────────────
def test_list_users_projection(service, role_id):
    result = service.list_users(PageRequest(search="alice"))
    assert result.records_total == 3
    assert result.records_filtered == 1
    row = result.rows[0]
    assert row["userName"] == "alice"
    assert row["email"] == "alice@example.com"
    assert row["displayName"] == "Alice Admin"
    assert row["lockedOut"] == ""
    assert row["roles"] == [
        {"id": role_id("admin"), "name": "admin"},
        {"id": role_id("editor"), "name": "editor"},
    ]
    assert row["claims"] == [{"key": "Name", "value": "Alice Admin"}]


def test_list_users_searches_email_or_username(service):
    result = service.list_users(PageRequest(search="example.com", sort_column="userName"))
    assert [r["userName"] for r in result.rows] == ["alice", "carol"]


def test_locked_out_projection(service, store, user_id):
    user = store.get_user(user_id("bob"))
    user.locked_out = True
    store.update_user(user)
    rows = service.list_users(PageRequest(sort_column="lockedOut", descending=True)).rows
    assert rows[0]["userName"] == "bob"
    assert rows[0]["lockedOut"] == "Yes"


def test_page_length_cap(store):
    service = AdminService(store, max_page_length=50)
    with pytest.raises(InvalidPageRequest):
        service.list_users(PageRequest(length=51))


def test_list_roles_projection(service, store, role_id):
    store.add_role_claim(role_id("admin"), Claim(CLAIM_TYPES.canonical_of("Role"), "admin"))
    result = service.list_roles(PageRequest(sort_column="name"))
    assert [r["name"] for r in result.rows] == ["admin", "editor", "viewer"]
    assert result.rows[0]["description"] == "Administrators"
    assert result.rows[0]["claims"] == [{"key": "Role", "value": "admin"}]


def test_role_options_ordered_by_name(service, role_id):
    options = service.role_options()
    assert list(options.values()) == ["admin", "editor", "viewer"]
    assert options[role_id("admin")] == "admin"


def test_claim_type_names(service):
    assert service.claim_type_names() == CLAIM_TYPES.symbolic_names()


# ─────────────────────────────────────────────────────────────────────────────
# Users
# ─────────────────────────────────────────────────────────────────────────────
def test_create_user_with_display_name(service, store, audit_log):
    user = service.create_user("dave", "dave@example.com", "Passw0rd!", name="Dave D", ctx=OperationContext(operator="ops"))
    stored = store.get_user(user.id)
    assert stored.claims == {Claim(NAME, "Dave D")}

    events = read_events(audit_log)
    assert events[-1]["event_type"] == "user_create"
    assert events[-1]["operator"] == "ops"
    assert events[-1]["success"] is True
    assert events[-1]["details"]["user_id"] == user.id


def test_create_user_without_name_has_no_claims(service, store):
    user = service.create_user("dave", "dave@example.com", "Passw0rd!")
    assert store.get_user(user.id).claims == set()


def test_create_duplicate_user_audits_failure(service, audit_log):
    with pytest.raises(StoreValidationFailed):
        service.create_user("alice", "x@example.com", "Passw0rd!", ctx=OperationContext(correlation_id="c-1"))
    event = read_events(audit_log)[-1]
    assert event["success"] is False
    assert event["details"]["correlation_id"] == "c-1"
    assert "already taken" in event["details"]["error"]


@pytest.mark.parametrize("username,email", [("", "a@x.com"), ("bad name", "a@x.com"), ("dave", "not-an-email")])
def test_create_user_validation(service, username, email):
    with pytest.raises(InvalidInput):
        service.create_user(username, email, "Passw0rd!")


def test_update_user_reconciles_roles_and_claims(service, store, user_id, role_id):
    uid = user_id("alice")
    report = service.update_user(
        uid,
        "alice@new.example.com",
        True,
        role_ids=[role_id("viewer"), role_id("editor")],
        claims=[("Name", "Alice A."), ("Email", "alice@new.example.com")],
    )
    user = store.get_user(uid)
    assert user.email == "alice@new.example.com"
    assert user.locked_out is True
    assert user.role_ids == {role_id("viewer"), role_id("editor")}
    assert user.claims == {
        Claim(NAME, "Alice A."),
        Claim(CLAIM_TYPES.canonical_of("Email"), "alice@new.example.com"),
    }
    assert report.roles.added == [role_id("viewer")]
    assert report.roles.removed == [role_id("admin")]
    assert len(report.claims.added) == 2
    assert report.claims.removed == [Claim(NAME, "Alice Admin")]


def test_update_user_none_leaves_associations(service, store, user_id):
    uid = user_id("alice")
    before = store.get_user(uid)
    report = service.update_user(uid, "alice@example.com", False)
    after = store.get_user(uid)
    assert after.role_ids == before.role_ids
    assert after.claims == before.claims
    assert report.roles is None and report.claims is None


def test_update_user_empty_collections_clear(service, store, user_id):
    uid = user_id("alice")
    service.update_user(uid, "alice@example.com", False, role_ids=[], claims=[])
    user = store.get_user(uid)
    assert user.role_ids == set()
    assert user.claims == set()


def test_update_user_unknown_claim_type_changes_nothing(service, store, user_id, role_id):
    uid = user_id("bob")
    before = store.get_user(uid)
    with pytest.raises(UnknownClaimType):
        service.update_user(uid, "new@example.com", True, role_ids=[role_id("admin")], claims=[("Shoe", "42")])
    after = store.get_user(uid)
    assert after == before


def test_update_user_unknown_role_changes_nothing(service, store, user_id):
    uid = user_id("bob")
    before = store.get_user(uid)
    with pytest.raises(InvalidInput, match="Unknown role"):
        service.update_user(uid, "new@example.com", True, role_ids=["no-such-role"])
    assert store.get_user(uid) == before


def test_update_missing_user(service, audit_log):
    with pytest.raises(NotFound, match="User not found."):
        service.update_user("missing", "a@x.com", False)
    event = read_events(audit_log)[-1]
    assert event["event_type"] == "user_update"
    assert event["target_id"] == "missing"
    assert event["success"] is False


def test_update_user_partial_failure(service, store, user_id, role_id, audit_log, monkeypatch):
    uid = user_id("carol")
    real_add = store.add_user_role

    def flaky_add(principal_id, rid):
        if rid == max(role_id("admin"), role_id("viewer")):
            raise StoreUnavailable("connection reset")
        real_add(principal_id, rid)

    monkeypatch.setattr(store, "add_user_role", flaky_add)
    with pytest.raises(PartialUpdateError) as excinfo:
        service.update_user(uid, "carol@example.com", False, role_ids=[role_id("admin"), role_id("viewer")])

    assert excinfo.value.status == 503
    assert store.get_user(uid).role_ids == {min(role_id("admin"), role_id("viewer"))}
    event = read_events(audit_log)[-1]
    assert event["success"] is False
    assert sorted(event["details"]["roles_added"]) == sorted([role_id("admin"), role_id("viewer")])


def test_delete_user(service, store, user_id):
    uid = user_id("carol")
    service.delete_user(uid)
    assert store.get_user(uid) is None
    with pytest.raises(NotFound):
        service.delete_user(uid)


def test_reset_password(service, store, user_id):
    uid = user_id("bob")
    service.reset_password(uid, "N3w-Password", "N3w-Password")
    assert store.check_password(uid, "N3w-Password")


def test_reset_password_mismatch_checked_first(service):
    with pytest.raises(InvalidInput, match="Passwords entered do not match."):
        service.reset_password("missing", "one-password", "two-password")


def test_reset_password_missing_user(service):
    with pytest.raises(NotFound):
        service.reset_password("missing", "N3w-Password", "N3w-Password")


# ─────────────────────────────────────────────────────────────────────────────
# Roles
# ─────────────────────────────────────────────────────────────────────────────
def test_create_role(service, store, audit_log):
    role = service.create_role("  auditor ", description="Reads audit logs")
    stored = store.get_role(role.id)
    assert stored.name == "auditor"
    assert stored.description == "Reads audit logs"
    assert read_events(audit_log)[-1]["event_type"] == "role_create"


def test_create_role_requires_name(service):
    with pytest.raises(InvalidInput):
        service.create_role("   ")


def test_update_role_renames_and_reconciles_claims(service, store, role_id):
    rid = role_id("editor")
    report = service.update_role(rid, "writer", claims=[("Role", "writer")])
    role = store.get_role(rid)
    assert role.name == "writer"
    assert role.claims == {Claim(CLAIM_TYPES.canonical_of("Role"), "writer")}
    assert report.claims.added == [Claim(CLAIM_TYPES.canonical_of("Role"), "writer")]


def test_update_role_keeps_description_when_omitted(service, store, role_id):
    rid = role_id("admin")
    service.update_role(rid, "admin")
    assert store.get_role(rid).description == "Administrators"


def test_delete_role_removes_memberships(service, store, user_id, role_id):
    service.delete_role(role_id("editor"))
    assert store.get_user(user_id("bob")).role_ids == set()


def test_delete_missing_role(service):
    with pytest.raises(NotFound, match="Role not found."):
        service.delete_role("missing")
