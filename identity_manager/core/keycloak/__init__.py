"""Keycloak Admin API adapter for the identity store port.

Architecture:
- client.py: HTTP client with service account authentication and auto-refresh
- users.py: realm users, role mappings, passwords
- roles.py: realm roles and role members
- store.py: KeycloakIdentityStore mapping Keycloak representations to core models
- exceptions.py: HTTP error type and mapping onto core errors

Usage:
    from identity_manager.core.keycloak import KeycloakClient, KeycloakIdentityStore

    client = KeycloakClient("http://keycloak:8080")
    client.authenticate_service_account("demo", "automation-cli", secret)
    store = KeycloakIdentityStore(client, realm="demo")
"""
from .client import KeycloakClient, REQUEST_TIMEOUT
from .exceptions import KeycloakAPIError, to_identity_error
from .roles import RoleService
from .store import KeycloakIdentityStore
from .users import UserService

__all__ = [
    "KeycloakClient",
    "REQUEST_TIMEOUT",
    "KeycloakAPIError",
    "to_identity_error",
    "RoleService",
    "UserService",
    "KeycloakIdentityStore",
]
