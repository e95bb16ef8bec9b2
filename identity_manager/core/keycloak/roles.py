"""Keycloak realm role operations."""
from __future__ import annotations
import logging
from typing import Optional
from urllib.parse import quote

from .client import KeycloakClient
from .exceptions import KeycloakAPIError
from .users import paged

logger = logging.getLogger(__name__)


class RoleService:
    """Service for managing Keycloak realm roles."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize role service.

        Args:
            client: Authenticated Keycloak client
            realm: Realm holding the managed roles
        """
        self.client = client
        self.realm = realm
        self.base = f"/admin/realms/{quote(realm, safe='')}"

    def is_internal(self, role: dict) -> bool:
        """Keycloak's composite default role is realm plumbing, not a managed role."""
        return role.get("name") == f"default-roles-{self.realm}".lower()

    def list_roles(self) -> list[dict]:
        resp = self.client.get(f"{self.base}/roles", params={"briefRepresentation": "false"})
        return [role for role in resp.json() or [] if not self.is_internal(role)]

    def get_role(self, role_id: str) -> Optional[dict]:
        try:
            role = self.client.get(f"{self.base}/roles-by-id/{quote(role_id, safe='')}").json()
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                return None
            raise
        if role.get("clientRole") or self.is_internal(role):
            return None
        return role

    def create_role(self, name: str, description: Optional[str] = None) -> dict:
        """Create a realm role and return its full representation (with id)."""
        payload = {"name": name}
        if description:
            payload["description"] = description
        self.client.post(f"{self.base}/roles", json=payload)
        logger.info("Role '%s' created", name)
        return self.client.get(f"{self.base}/roles/{quote(name, safe='')}").json()

    def update_role(self, role_id: str, representation: dict) -> None:
        self.client.put(f"{self.base}/roles-by-id/{quote(role_id, safe='')}", json=representation)

    def delete_role(self, role_id: str) -> None:
        self.client.delete(f"{self.base}/roles-by-id/{quote(role_id, safe='')}")

    def member_ids(self, role_name: str) -> list[str]:
        """Ids of users holding the role directly."""
        path = f"{self.base}/roles/{quote(role_name, safe='')}/users"
        return [user["id"] for user in paged(self.client, path) if user.get("id")]
