"""Keycloak user operations (realm users, realm role mappings, attributes)."""
from __future__ import annotations
import logging
from typing import Iterator, Optional
from urllib.parse import quote

from .client import KeycloakClient
from .exceptions import KeycloakAPIError

PAGE_SIZE = 100

logger = logging.getLogger(__name__)


def paged(client: KeycloakClient, path: str, params: Optional[dict] = None, page_size: int = PAGE_SIZE) -> Iterator[dict]:
    """Iterate over a first/max paginated Admin API collection."""
    first = 0
    while True:
        query = dict(params or {}, first=first, max=page_size)
        batch = client.get(path, params=query).json() or []
        yield from batch
        if len(batch) < page_size:
            return
        first += page_size


class UserService:
    """Service for managing Keycloak users in one realm."""

    def __init__(self, client: KeycloakClient, realm: str):
        """Initialize user service.

        Args:
            client: Authenticated Keycloak client
            realm: Realm holding the managed users
        """
        self.client = client
        self.realm = realm
        self.base = f"/admin/realms/{quote(realm, safe='')}"

    def list_users(self) -> list[dict]:
        return list(paged(self.client, f"{self.base}/users", {"briefRepresentation": "false"}))

    def get_user(self, user_id: str) -> Optional[dict]:
        try:
            return self.client.get(f"{self.base}/users/{quote(user_id, safe='')}").json()
        except KeycloakAPIError as exc:
            if exc.status_code == 404:
                return None
            raise

    def get_user_by_username(self, username: str) -> Optional[dict]:
        """Return the user representation that exactly matches the username."""
        resp = self.client.get(f"{self.base}/users", params={"username": username, "exact": "true"})
        for user in resp.json() or []:
            if user.get("username", "").lower() == username.lower():
                return user
        return None

    def create_user(self, username: str, email: str, password: str) -> str:
        """Create an enabled user with a permanent password and return its id."""
        payload = {
            "username": username,
            "email": email,
            "enabled": True,
            "credentials": [{"type": "password", "value": password, "temporary": False}],
        }
        resp = self.client.post(f"{self.base}/users", json=payload)
        location = resp.headers.get("Location", "")
        if "/users/" in location:
            return location.rstrip("/").rsplit("/", 1)[-1]
        created = self.get_user_by_username(username)
        if not created:
            raise KeycloakAPIError(500, f"User '{username}' created but not found", f"{self.base}/users")
        return created["id"]

    def update_user(self, user_id: str, representation: dict) -> None:
        self.client.put(f"{self.base}/users/{quote(user_id, safe='')}", json=representation)

    def delete_user(self, user_id: str) -> None:
        self.client.delete(f"{self.base}/users/{quote(user_id, safe='')}")

    def reset_password(self, user_id: str, password: str) -> None:
        self.client.put(
            f"{self.base}/users/{quote(user_id, safe='')}/reset-password",
            json={"type": "password", "value": password, "temporary": False},
        )

    def realm_role_ids(self, user_id: str) -> set[str]:
        resp = self.client.get(f"{self.base}/users/{quote(user_id, safe='')}/role-mappings/realm")
        return {role["id"] for role in resp.json() or [] if role.get("id")}

    def add_realm_role(self, user_id: str, role: dict) -> None:
        self.client.post(
            f"{self.base}/users/{quote(user_id, safe='')}/role-mappings/realm",
            json=[{"id": role["id"], "name": role["name"]}],
        )
        logger.info("Granted role '%s' to user %s", role["name"], user_id)

    def remove_realm_role(self, user_id: str, role: dict) -> None:
        self.client.delete(
            f"{self.base}/users/{quote(user_id, safe='')}/role-mappings/realm",
            json=[{"id": role["id"], "name": role["name"]}],
        )
        logger.info("Revoked role '%s' from user %s", role["name"], user_id)
