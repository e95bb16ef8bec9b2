"""Per-request access to the admin service and the operation context."""
from __future__ import annotations
import uuid

from flask import current_app, g, request

from identity_manager.core.admin_service import AdminService, OperationContext

EXTENSION_KEY = "identity_manager"
CORRELATION_HEADER = "X-Correlation-Id"
OPERATOR_HEADER = "X-Operator"


def get_service() -> AdminService:
    """Admin service bound to the running app (installed by create_app)."""
    return current_app.extensions[EXTENSION_KEY]


def correlation_id() -> str:
    """Correlation token from the request header, generated once per request otherwise."""
    token = getattr(g, "correlation_id", None)
    if not token:
        token = (request.headers.get(CORRELATION_HEADER) or "").strip() or uuid.uuid4().hex
        g.correlation_id = token
    return token


def operation_context() -> OperationContext:
    # Operator identity is asserted by the authenticating reverse proxy
    operator = (request.headers.get(OPERATOR_HEADER) or "").strip() or "api"
    return OperationContext(operator=operator, correlation_id=correlation_id())
