"""IdentityStore adapter over the Keycloak Admin REST API.

Mapping:
    User             ⇔ realm user (locked_out ⇔ enabled = false)
    Role             ⇔ realm role (client roles and default-roles-* are hidden)
    Role membership  ⇔ realm role mapping
    Claim            ⇔ user/role attribute named by the canonical claim type

Attributes whose name is not a registered canonical claim type are preserved
untouched and never reported as claims. Claim add/remove is a
read-modify-write of the attribute map; Keycloak makes each PUT atomic, but
concurrent edits of the same principal's claims can overwrite each other.

Keycloak 24+ enables the declarative user profile and drops user attributes
it does not declare. Claim attributes survive only when the realm sets the
user profile `unmanagedAttributePolicy` to `ENABLED` (or `ADMIN_EDIT`), or
declares each claim URI as a user profile attribute.
"""
from __future__ import annotations
import contextlib
import logging
from datetime import datetime, timezone
from typing import Iterator, Optional

from ..claim_types import CLAIM_TYPES, ClaimTypeRegistry
from ..errors import NotFound
from ..models import Claim, Role, User
from ..store import IdentityStore
from .client import KeycloakClient
from .exceptions import KeycloakAPIError, to_identity_error
from .roles import RoleService
from .users import UserService

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def _translated(not_found: str = "Resource not found.") -> Iterator[None]:
    try:
        yield
    except KeycloakAPIError as exc:
        logger.warning("Keycloak call failed: %s", exc)
        raise to_identity_error(exc, not_found) from exc


class KeycloakIdentityStore(IdentityStore):
    """IdentityStore backed by one Keycloak realm."""

    name = "keycloak"

    def __init__(
        self,
        client: KeycloakClient,
        realm: str,
        claim_types: ClaimTypeRegistry = CLAIM_TYPES,
    ):
        self.client = client
        self.realm = realm
        self.claim_types = claim_types
        self.users = UserService(client, realm)
        self.roles = RoleService(client, realm)

    # ─────────────────────────────────────────────────────────────────────
    # Representation mapping
    # ─────────────────────────────────────────────────────────────────────
    def _claims_from(self, representation: dict) -> set[Claim]:
        claims = set()
        for name, values in (representation.get("attributes") or {}).items():
            if not self.claim_types.is_canonical(name):
                continue
            if isinstance(values, str):
                values = [values]
            claims.update(Claim(name, value) for value in values or [])
        return claims

    def _to_user(self, rep: dict, role_ids: set[str]) -> User:
        created = rep.get("createdTimestamp")
        return User(
            id=rep["id"],
            username=rep.get("username", ""),
            email=rep.get("email"),
            locked_out=not rep.get("enabled", True),
            email_verified=bool(rep.get("emailVerified")),
            first_name=rep.get("firstName"),
            last_name=rep.get("lastName"),
            created=datetime.fromtimestamp(created / 1000.0, tz=timezone.utc) if created else None,
            role_ids=set(role_ids),
            claims=self._claims_from(rep),
        )

    def _to_role(self, rep: dict) -> Role:
        return Role(
            id=rep["id"],
            name=rep.get("name", ""),
            description=rep.get("description"),
            claims=self._claims_from(rep),
        )

    @staticmethod
    def _with_attribute(rep: dict, claim: Claim, present: bool) -> bool:
        """Add or drop one attribute value in place; return True if rep changed."""
        attributes = dict(rep.get("attributes") or {})
        values = list(attributes.get(claim.type) or [])
        if present == (claim.value in values):
            return False
        if present:
            values.append(claim.value)
        else:
            values = [v for v in values if v != claim.value]
        if values:
            attributes[claim.type] = values
        else:
            attributes.pop(claim.type, None)
        rep["attributes"] = attributes
        return True

    # ─────────────────────────────────────────────────────────────────────
    # Users
    # ─────────────────────────────────────────────────────────────────────
    def list_users(self) -> list[User]:
        with _translated():
            reps = self.users.list_users()
            memberships: dict[str, set[str]] = {}
            # One request per role rather than one per user
            for role in self.roles.list_roles():
                for user_id in self.roles.member_ids(role["name"]):
                    memberships.setdefault(user_id, set()).add(role["id"])
        return [self._to_user(rep, memberships.get(rep["id"], set())) for rep in reps]

    def get_user(self, user_id: str) -> Optional[User]:
        with _translated("User not found."):
            rep = self.users.get_user(user_id)
            if rep is None:
                return None
            visible = {role["id"] for role in self.roles.list_roles()}
            role_ids = self.users.realm_role_ids(user_id) & visible
        return self._to_user(rep, role_ids)

    def create_user(self, username: str, email: str, password: str) -> User:
        with _translated():
            user_id = self.users.create_user(username, email, password)
            rep = self.users.get_user(user_id)
        if rep is None:
            raise NotFound("User not found.")
        return self._to_user(rep, set())

    def update_user(self, user: User) -> None:
        with _translated("User not found."):
            rep = self.users.get_user(user.id)
            if rep is None:
                raise NotFound("User not found.")
            rep.update({
                "username": user.username,
                "email": user.email,
                "enabled": not user.locked_out,
                "emailVerified": user.email_verified,
                "firstName": user.first_name,
                "lastName": user.last_name,
            })
            self.users.update_user(user.id, rep)

    def delete_user(self, user_id: str) -> None:
        with _translated("User not found."):
            self.users.delete_user(user_id)

    def set_password(self, user_id: str, password: str) -> None:
        with _translated("User not found."):
            self.users.reset_password(user_id, password)

    def _role_rep(self, role_id: str) -> dict:
        rep = self.roles.get_role(role_id)
        if rep is None:
            raise NotFound("Role not found.")
        return rep

    def add_user_role(self, user_id: str, role_id: str) -> None:
        with _translated("User not found."):
            self.users.add_realm_role(user_id, self._role_rep(role_id))

    def remove_user_role(self, user_id: str, role_id: str) -> None:
        with _translated("User not found."):
            self.users.remove_realm_role(user_id, self._role_rep(role_id))

    def _set_user_claim(self, user_id: str, claim: Claim, present: bool) -> None:
        with _translated("User not found."):
            rep = self.users.get_user(user_id)
            if rep is None:
                raise NotFound("User not found.")
            if self._with_attribute(rep, Claim(*claim), present):
                self.users.update_user(user_id, rep)

    def add_user_claim(self, user_id: str, claim: Claim) -> None:
        self._set_user_claim(user_id, claim, True)

    def remove_user_claim(self, user_id: str, claim: Claim) -> None:
        self._set_user_claim(user_id, claim, False)

    # ─────────────────────────────────────────────────────────────────────
    # Roles
    # ─────────────────────────────────────────────────────────────────────
    def list_roles(self) -> list[Role]:
        with _translated():
            return [self._to_role(rep) for rep in self.roles.list_roles()]

    def get_role(self, role_id: str) -> Optional[Role]:
        with _translated("Role not found."):
            rep = self.roles.get_role(role_id)
        return self._to_role(rep) if rep else None

    def create_role(self, name: str, description: Optional[str] = None) -> Role:
        with _translated():
            return self._to_role(self.roles.create_role(name, description))

    def update_role(self, role: Role) -> None:
        with _translated("Role not found."):
            rep = self._role_rep(role.id)
            rep["name"] = role.name
            rep["description"] = role.description or ""
            self.roles.update_role(role.id, rep)

    def delete_role(self, role_id: str) -> None:
        with _translated("Role not found."):
            self._role_rep(role_id)
            self.roles.delete_role(role_id)

    def _set_role_claim(self, role_id: str, claim: Claim, present: bool) -> None:
        with _translated("Role not found."):
            rep = self._role_rep(role_id)
            if self._with_attribute(rep, Claim(*claim), present):
                self.roles.update_role(role_id, rep)

    def add_role_claim(self, role_id: str, claim: Claim) -> None:
        self._set_role_claim(role_id, claim, True)

    def remove_role_claim(self, role_id: str, claim: Claim) -> None:
        self._set_role_claim(role_id, claim, False)
