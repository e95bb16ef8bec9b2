"""Process-local identity store for demo mode and tests.

State lives in dictionaries guarded by one re-entrant lock, so every single
add/remove is atomic. Passwords are hashed with werkzeug.security and never
leave the store.
"""
from __future__ import annotations
import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from .errors import NotFound, StoreValidationFailed
from .models import Claim, Role, User
from .store import IdentityStore

PASSWORD_MIN_LENGTH = 8


class InMemoryIdentityStore(IdentityStore):
    """Dictionary-backed IdentityStore with uniqueness rules on usernames and role names."""

    name = "memory"

    def __init__(self, password_min_length: int = PASSWORD_MIN_LENGTH):
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._roles: dict[str, Role] = {}
        self._passwords: dict[str, str] = {}
        self.password_min_length = password_min_length

    # ─────────────────────────────────────────────────────────────────────
    # Users
    # ─────────────────────────────────────────────────────────────────────
    def list_users(self) -> list[User]:
        with self._lock:
            return [copy.deepcopy(user) for user in self._users.values()]

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return copy.deepcopy(user) if user else None

    def create_user(self, username: str, email: str, password: str) -> User:
        with self._lock:
            if self._find_user_by_name(username):
                raise StoreValidationFailed(f"Username '{username}' is already taken.", status=409)
            self._check_password(password)
            user = User(
                id=str(uuid.uuid4()),
                username=username,
                email=email,
                created=datetime.now(timezone.utc),
            )
            self._users[user.id] = user
            self._passwords[user.id] = generate_password_hash(password)
            return copy.deepcopy(user)

    def update_user(self, user: User) -> None:
        with self._lock:
            stored = self._require_user(user.id)
            other = self._find_user_by_name(user.username)
            if other and other.id != user.id:
                raise StoreValidationFailed(f"Username '{user.username}' is already taken.", status=409)
            stored.username = user.username
            stored.email = user.email
            stored.locked_out = user.locked_out
            stored.email_verified = user.email_verified
            stored.first_name = user.first_name
            stored.last_name = user.last_name

    def delete_user(self, user_id: str) -> None:
        with self._lock:
            self._require_user(user_id)
            del self._users[user_id]
            self._passwords.pop(user_id, None)

    def set_password(self, user_id: str, password: str) -> None:
        with self._lock:
            self._require_user(user_id)
            self._check_password(password)
            self._passwords[user_id] = generate_password_hash(password)

    def check_password(self, user_id: str, password: str) -> bool:
        with self._lock:
            hashed = self._passwords.get(user_id)
            return bool(hashed) and check_password_hash(hashed, password)

    def add_user_role(self, user_id: str, role_id: str) -> None:
        with self._lock:
            user = self._require_user(user_id)
            self._require_role(role_id)
            user.role_ids.add(role_id)

    def remove_user_role(self, user_id: str, role_id: str) -> None:
        with self._lock:
            self._require_user(user_id).role_ids.discard(role_id)

    def add_user_claim(self, user_id: str, claim: Claim) -> None:
        with self._lock:
            self._require_user(user_id).claims.add(Claim(*claim))

    def remove_user_claim(self, user_id: str, claim: Claim) -> None:
        with self._lock:
            self._require_user(user_id).claims.discard(Claim(*claim))

    # ─────────────────────────────────────────────────────────────────────
    # Roles
    # ─────────────────────────────────────────────────────────────────────
    def list_roles(self) -> list[Role]:
        with self._lock:
            return [copy.deepcopy(role) for role in self._roles.values()]

    def get_role(self, role_id: str) -> Optional[Role]:
        with self._lock:
            role = self._roles.get(role_id)
            return copy.deepcopy(role) if role else None

    def create_role(self, name: str, description: Optional[str] = None) -> Role:
        with self._lock:
            if self._find_role_by_name(name):
                raise StoreValidationFailed(f"Role name '{name}' is already taken.", status=409)
            role = Role(id=str(uuid.uuid4()), name=name, description=description)
            self._roles[role.id] = role
            return copy.deepcopy(role)

    def update_role(self, role: Role) -> None:
        with self._lock:
            stored = self._require_role(role.id)
            other = self._find_role_by_name(role.name)
            if other and other.id != role.id:
                raise StoreValidationFailed(f"Role name '{role.name}' is already taken.", status=409)
            stored.name = role.name
            stored.description = role.description

    def delete_role(self, role_id: str) -> None:
        with self._lock:
            self._require_role(role_id)
            del self._roles[role_id]
            for user in self._users.values():
                user.role_ids.discard(role_id)

    def add_role_claim(self, role_id: str, claim: Claim) -> None:
        with self._lock:
            self._require_role(role_id).claims.add(Claim(*claim))

    def remove_role_claim(self, role_id: str, claim: Claim) -> None:
        with self._lock:
            self._require_role(role_id).claims.discard(Claim(*claim))

    def ping(self) -> None:
        return None

    # ─────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────
    def _require_user(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFound("User not found.")
        return user

    def _require_role(self, role_id: str) -> Role:
        role = self._roles.get(role_id)
        if role is None:
            raise NotFound("Role not found.")
        return role

    def _find_user_by_name(self, username: str) -> Optional[User]:
        wanted = username.lower()
        return next((u for u in self._users.values() if u.username.lower() == wanted), None)

    def _find_role_by_name(self, name: str) -> Optional[Role]:
        wanted = name.lower()
        return next((r for r in self._roles.values() if r.name.lower() == wanted), None)

    def _check_password(self, password: str) -> None:
        if not password or len(password) < self.password_min_length:
            raise StoreValidationFailed(
                f"Passwords must be at least {self.password_min_length} characters."
            )
