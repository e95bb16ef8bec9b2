"""
Admin Service Layer: account and role administration

This module holds the logic behind every admin endpoint, used by both the
Flask API and the CLI. It ensures consistent validation, projection, logging
and audit across interfaces.

Architecture:
    API (/api/*) ──┐
                   ├──> admin_service.py ──> IdentityStore ──> memory | Keycloak
    CLI ───────────┘

Features:
    - Paged, filtered, sorted listings through the dynamic query engine
    - Desired-state updates of role memberships and claims via reconciliation
    - Failure logging with operation kind and target id, no automatic retries
    - Signed audit trail of every mutation (success and failure)
"""

from __future__ import annotations
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

from .. import audit
from .claim_types import CLAIM_TYPES, NAME, ClaimTypeRegistry
from .errors import IdentityError, InvalidInput, InvalidPageRequest, NotFound
from .fields import ROLE_FIELDS, USER_FIELDS
from .models import Claim, Role, User
from .query import MATCH_ANY, PageRequest, PageResult, QueryEngine
from .reconcile import ApplyResult, apply, reconcile_claims, reconcile_roles
from .store import IdentityStore
from .validators import validate_email, validate_password_pair, validate_role_name, validate_username

logger = logging.getLogger(__name__)

USER_SEARCH_FIELDS = ("email", "userName")
ROLE_SEARCH_FIELDS = ("name",)


@dataclass
class UpdateReport:
    """Association changes applied by an update."""

    principal_id: str
    roles: Optional[ApplyResult] = None
    claims: Optional[ApplyResult] = None


@dataclass
class OperationContext:
    """Who asked, and the correlation id to tie logs and audit together."""

    operator: str = "system"
    correlation_id: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)


class AdminService:
    """User and role administration over an IdentityStore."""

    def __init__(
        self,
        store: IdentityStore,
        claim_types: ClaimTypeRegistry = CLAIM_TYPES,
        search_match: str = MATCH_ANY,
        max_page_length: int = 500,
    ):
        self.store = store
        self.claim_types = claim_types
        self.max_page_length = max_page_length
        self.user_query = QueryEngine(USER_FIELDS, USER_SEARCH_FIELDS, match=search_match)
        self.role_query = QueryEngine(ROLE_FIELDS, ROLE_SEARCH_FIELDS, match=search_match)

    # ─────────────────────────────────────────────────────────────────────
    # Audit / logging plumbing
    # ─────────────────────────────────────────────────────────────────────
    @contextlib.contextmanager
    def _operation(
        self,
        event_type: audit.EventType,
        target_id: str,
        ctx: Optional[OperationContext],
    ) -> Iterator[OperationContext]:
        ctx = ctx or OperationContext()
        ctx.details.setdefault("correlation_id", ctx.correlation_id)
        try:
            yield ctx
        except IdentityError as exc:
            log = logger.warning if exc.is_client_error else logger.error
            log("%s failed for %s (correlation_id=%s): %s", event_type, target_id, ctx.correlation_id, exc.detail)
            audit.safe_log_admin_event(
                event_type, target_id, operator=ctx.operator,
                details=dict(ctx.details, error=exc.detail), success=False,
            )
            raise
        except Exception:
            logger.exception("%s failed for %s (correlation_id=%s)", event_type, target_id, ctx.correlation_id)
            audit.safe_log_admin_event(
                event_type, target_id, operator=ctx.operator,
                details=dict(ctx.details, error="unexpected error"), success=False,
            )
            raise
        audit.safe_log_admin_event(event_type, target_id, operator=ctx.operator, details=ctx.details)

    # ─────────────────────────────────────────────────────────────────────
    # Projections
    # ─────────────────────────────────────────────────────────────────────
    def project_claims(self, claims: Iterable[Claim]) -> list[dict]:
        pairs = sorted((self.claim_types.symbolic_of(c.type), c.value) for c in claims)
        return [{"key": key, "value": value} for key, value in pairs]

    def project_user(self, user: User, role_names: dict[str, str]) -> dict:
        roles = sorted(
            ({"id": rid, "name": role_names[rid]} for rid in user.role_ids if rid in role_names),
            key=lambda r: (r["name"], r["id"]),
        )
        return {
            "id": user.id,
            "userName": user.username,
            "email": user.email,
            "displayName": user.claim_value(NAME),
            "lockedOut": "Yes" if user.locked_out else "",
            "roles": roles,
            "claims": self.project_claims(user.claims),
        }

    def project_role(self, role: Role) -> dict:
        return {
            "id": role.id,
            "name": role.name,
            "description": role.description,
            "claims": self.project_claims(role.claims),
        }

    # ─────────────────────────────────────────────────────────────────────
    # Lookups
    # ─────────────────────────────────────────────────────────────────────
    def claim_type_names(self) -> list[str]:
        return self.claim_types.symbolic_names()

    def role_options(self) -> dict[str, str]:
        """Role id → name, ordered by name, for role pickers."""
        roles = sorted(self.store.list_roles(), key=lambda r: (r.name, r.id))
        return {role.id: role.name for role in roles}

    def _check_page(self, request: PageRequest) -> None:
        if request.length > self.max_page_length:
            raise InvalidPageRequest(f"length must be <= {self.max_page_length}, got {request.length}")

    def _require_user(self, user_id: str) -> User:
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFound("User not found.")
        return user

    def _require_role(self, role_id: str) -> Role:
        role = self.store.get_role(role_id)
        if role is None:
            raise NotFound("Role not found.")
        return role

    # ─────────────────────────────────────────────────────────────────────
    # Users
    # ─────────────────────────────────────────────────────────────────────
    def list_users(self, request: PageRequest) -> PageResult:
        self._check_page(request)
        role_names = {role.id: role.name for role in self.store.list_roles()}
        result = self.user_query.query(self.store.list_users(), request)
        result.rows = [self.project_user(user, role_names) for user in result.rows]
        return result

    def create_user(
        self,
        username: str,
        email: str,
        password: str,
        name: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> User:
        """Create an account; a non-blank ``name`` becomes its Name claim."""
        with self._operation("user_create", (username or "").strip(), ctx) as op:
            username = validate_username(username)
            email = validate_email(email)
            if not password:
                raise InvalidInput("Password is required.")
            user = self.store.create_user(username, email, password)
            op.details["user_id"] = user.id
            logger.info("Created user %s.", username)
            if name and name.strip():
                claim = Claim(NAME, name.strip())
                self.store.add_user_claim(user.id, claim)
                user.claims.add(claim)
        return user

    def update_user(
        self,
        user_id: str,
        email: Optional[str],
        locked: bool,
        role_ids: Optional[Iterable[str]] = None,
        claims: Optional[Iterable[tuple[str, str]]] = None,
        ctx: Optional[OperationContext] = None,
    ) -> UpdateReport:
        """Update scalar fields, then reconcile roles and claims to the desired sets.

        ``role_ids`` / ``claims`` of None leave that association untouched; an
        empty collection removes every entry.
        """
        with self._operation("user_update", user_id, ctx) as op:
            user = self._require_user(user_id)
            email = validate_email(email, required=False)

            # Validation phase: every delta is computed before the first write
            role_delta = None
            if role_ids is not None:
                desired_roles = set(role_ids)
                known = {role.id for role in self.store.list_roles()}
                unknown = sorted(desired_roles - known)
                if unknown:
                    raise InvalidInput(f"Unknown role '{unknown[0]}'.")
                role_delta = reconcile_roles(user.id, desired_roles, user.role_ids)
            claim_delta = None
            if claims is not None:
                claim_delta = reconcile_claims(user.id, claims, user.claims, self.claim_types)

            user.email = email
            user.locked_out = bool(locked)
            self.store.update_user(user)
            logger.info("Updated user %s.", user.username)

            report = UpdateReport(user.id)
            if role_delta is not None:
                op.details["roles_added"] = sorted(role_delta.to_add)
                op.details["roles_removed"] = sorted(role_delta.to_remove)
                report.roles = apply(user.id, role_delta, self.store.add_user_role, self.store.remove_user_role)
            if claim_delta is not None:
                op.details["claims_added"] = self.project_claims(claim_delta.to_add)
                op.details["claims_removed"] = self.project_claims(claim_delta.to_remove)
                report.claims = apply(user.id, claim_delta, self.store.add_user_claim, self.store.remove_user_claim)
        return report

    def delete_user(self, user_id: str, ctx: Optional[OperationContext] = None) -> None:
        with self._operation("user_delete", user_id, ctx) as op:
            user = self._require_user(user_id)
            op.details["username"] = user.username
            self.store.delete_user(user_id)
            logger.info("Deleted user %s.", user.username)

    def reset_password(
        self,
        user_id: str,
        password: str,
        verify: str,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        with self._operation("user_password_reset", user_id, ctx):
            validate_password_pair(password, verify)
            user = self._require_user(user_id)
            self.store.set_password(user_id, password)
            logger.info("Password reset for %s.", user.username)

    # ─────────────────────────────────────────────────────────────────────
    # Roles
    # ─────────────────────────────────────────────────────────────────────
    def list_roles(self, request: PageRequest) -> PageResult:
        self._check_page(request)
        result = self.role_query.query(self.store.list_roles(), request)
        result.rows = [self.project_role(role) for role in result.rows]
        return result

    def create_role(
        self,
        name: str,
        description: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> Role:
        with self._operation("role_create", (name or "").strip(), ctx) as op:
            name = validate_role_name(name)
            role = self.store.create_role(name, (description or "").strip() or None)
            op.details["role_id"] = role.id
            logger.info("Created role %s.", name)
        return role

    def update_role(
        self,
        role_id: str,
        name: str,
        claims: Optional[Iterable[tuple[str, str]]] = None,
        description: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> UpdateReport:
        """Rename (and optionally re-describe) a role, then reconcile its claims."""
        with self._operation("role_update", role_id, ctx) as op:
            role = self._require_role(role_id)
            name = validate_role_name(name)
            claim_delta = None
            if claims is not None:
                claim_delta = reconcile_claims(role.id, claims, role.claims, self.claim_types)

            role.name = name
            if description is not None:
                role.description = description.strip() or None
            self.store.update_role(role)
            logger.info("Updated role %s.", role.name)

            report = UpdateReport(role.id)
            if claim_delta is not None:
                op.details["claims_added"] = self.project_claims(claim_delta.to_add)
                op.details["claims_removed"] = self.project_claims(claim_delta.to_remove)
                report.claims = apply(role.id, claim_delta, self.store.add_role_claim, self.store.remove_role_claim)
        return report

    def delete_role(self, role_id: str, ctx: Optional[OperationContext] = None) -> None:
        with self._operation("role_delete", role_id, ctx) as op:
            role = self._require_role(role_id)
            op.details["name"] = role.name
            self.store.delete_role(role_id)
            logger.info("Deleted role %s.", role.name)
