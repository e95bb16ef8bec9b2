"""Health check endpoints."""
import logging

from flask import Blueprint

from identity_manager.api.context import get_service
from identity_manager.core.errors import IdentityError

bp = Blueprint("health", __name__)

logger = logging.getLogger(__name__)


@bp.route("/health")
def health_check():
    """Basic health check endpoint."""
    return ("ok", 200, {"Content-Type": "text/plain"})


@bp.route("/ready")
def readiness_check():
    """Readiness check endpoint: the identity store must answer."""
    try:
        get_service().store.ping()
    except IdentityError as exc:
        logger.warning("Readiness check failed: %s", exc.detail)
        return ("unavailable", 503, {"Content-Type": "text/plain"})
    return ("ready", 200, {"Content-Type": "text/plain"})
