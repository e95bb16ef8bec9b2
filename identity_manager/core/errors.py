"""Error taxonomy shared by the query engine, reconciliation engine and store adapters.

Every error carries an HTTP status and a human-readable detail. Client errors
(4xx) surface their detail to the caller; server errors (5xx) are reported with
a generic message and a correlation id by the API error handlers.
"""
from __future__ import annotations
from typing import Any, Optional


class IdentityError(Exception):
    """Base error with HTTP status and detail message."""

    status = 500
    title = "Internal Server Error"

    def __init__(self, detail: str, status: Optional[int] = None):
        self.detail = detail
        if status is not None:
            self.status = status
        super().__init__(detail)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    def to_dict(self) -> dict:
        """Convert to the JSON error body returned by the API."""
        return {"error": self.title, "message": self.detail}


class UnknownField(IdentityError):
    """Sort or filter column does not name an exposed field."""

    status = 400
    title = "Unknown Field"

    def __init__(self, entity_kind: str, name: str):
        self.entity_kind = entity_kind
        self.name = name
        super().__init__(f"Unknown field '{name}' for {entity_kind}")


class InvalidPageRequest(IdentityError):
    """Paging bounds or paging parameters are malformed."""

    status = 400
    title = "Invalid Page Request"


class UnknownClaimType(IdentityError):
    """Symbolic or canonical claim type is not in the registry."""

    status = 400
    title = "Unknown Claim Type"

    def __init__(self, claim_type: str):
        self.claim_type = claim_type
        super().__init__(f"Unknown claim type '{claim_type}'")


class InvalidInput(IdentityError):
    """Request input rejected before reaching the store."""

    status = 400
    title = "Bad Request"


class NotFound(IdentityError):
    """Target principal does not exist."""

    status = 404
    title = "Not Found"


class StoreValidationFailed(IdentityError):
    """The identity store rejected a mutation (duplicate name, policy rule, ...)."""

    status = 400
    title = "Bad Request"


class StoreUnavailable(IdentityError):
    """The identity store failed for an infrastructure reason."""

    status = 503
    title = "Service Unavailable"


class PartialUpdateError(IdentityError):
    """An association apply stopped part-way; earlier mutations were kept.

    Attributes:
        principal_id: Principal being reconciled
        applied: Mutations that reached the store, as ("add"|"remove", key) pairs
        pending: Mutations never attempted (including the failed one)
        cause: The underlying store error
    """

    def __init__(
        self,
        principal_id: str,
        applied: list[tuple[str, Any]],
        pending: list[tuple[str, Any]],
        cause: Exception,
    ):
        self.principal_id = principal_id
        self.applied = applied
        self.pending = pending
        self.cause = cause
        if isinstance(cause, IdentityError):
            status = cause.status
            self.title = cause.title
            reason = cause.detail
        else:
            status = 503
            self.title = StoreUnavailable.title
            reason = str(cause)
        super().__init__(
            f"Update of '{principal_id}' stopped after {len(applied)} of "
            f"{len(applied) + len(pending)} changes: {reason}",
            status=status,
        )
