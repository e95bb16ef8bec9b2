"""Identity store port consumed by the admin service.

Adapters:
    InMemoryIdentityStore  (memory_store.py) - demo mode and tests
    KeycloakIdentityStore  (keycloak/store.py) - Keycloak Admin REST API

Contract for every adapter:
    - get_* returns None for an unknown id; mutations raise NotFound
    - store-side rule violations raise StoreValidationFailed
    - infrastructure failures raise StoreUnavailable
    - each single add/remove either fully succeeds or fully fails
    - deleting a principal removes its associations
"""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from .models import Claim, Role, User


class IdentityStore(ABC):
    """Persistence operations for users, roles and their associations."""

    name = "abstract"

    # Users
    @abstractmethod
    def list_users(self) -> list[User]:
        """All users with role_ids and claims populated."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    def create_user(self, username: str, email: str, password: str) -> User:
        ...

    @abstractmethod
    def update_user(self, user: User) -> None:
        """Persist scalar fields (email, locked_out, names); associations are untouched."""

    @abstractmethod
    def delete_user(self, user_id: str) -> None:
        ...

    @abstractmethod
    def set_password(self, user_id: str, password: str) -> None:
        """Replace the user's credential (removing any existing one)."""

    @abstractmethod
    def add_user_role(self, user_id: str, role_id: str) -> None:
        ...

    @abstractmethod
    def remove_user_role(self, user_id: str, role_id: str) -> None:
        ...

    @abstractmethod
    def add_user_claim(self, user_id: str, claim: Claim) -> None:
        ...

    @abstractmethod
    def remove_user_claim(self, user_id: str, claim: Claim) -> None:
        ...

    # Roles
    @abstractmethod
    def list_roles(self) -> list[Role]:
        """All roles with claims populated."""

    @abstractmethod
    def get_role(self, role_id: str) -> Optional[Role]:
        ...

    @abstractmethod
    def create_role(self, name: str, description: Optional[str] = None) -> Role:
        ...

    @abstractmethod
    def update_role(self, role: Role) -> None:
        """Persist name and description; claims are untouched."""

    @abstractmethod
    def delete_role(self, role_id: str) -> None:
        ...

    @abstractmethod
    def add_role_claim(self, role_id: str, claim: Claim) -> None:
        ...

    @abstractmethod
    def remove_role_claim(self, role_id: str, claim: Claim) -> None:
        ...

    def ping(self) -> None:
        """Raise StoreUnavailable if the store cannot serve requests."""
        self.list_roles()
