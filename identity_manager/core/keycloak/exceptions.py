"""Keycloak-specific exceptions and their mapping onto the core error taxonomy."""
from __future__ import annotations

from ..errors import IdentityError, NotFound, StoreUnavailable, StoreValidationFailed


class KeycloakAPIError(Exception):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


def to_identity_error(exc: KeycloakAPIError, not_found: str = "Resource not found.") -> IdentityError:
    """Translate a Keycloak HTTP failure into a core error.

    400/409 carry a user-facing validation message; 404 means the principal is
    gone; everything else (auth failures, 5xx) is an infrastructure problem.
    """
    if exc.status_code == 404:
        return NotFound(not_found)
    if exc.status_code in (400, 409):
        return StoreValidationFailed(exc.message or "Request rejected by identity store.", status=exc.status_code)
    return StoreUnavailable(f"Identity store error {exc.status_code} on {exc.endpoint}")
