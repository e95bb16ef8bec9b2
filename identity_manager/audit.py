"""Audit logging for administrative mutations on users and roles."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Optional

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "admin-events.jsonl"

_configured_key: Optional[str] = None

logger = logging.getLogger(__name__)

EventType = Literal[
    "user_create", "user_update", "user_delete", "user_password_reset",
    "role_create", "role_update", "role_delete",
]


def configure(log_dir: str | Path | None = None, signing_key: str | None = None) -> None:
    """Point the audit trail at a directory and signing key (called by create_app)."""
    global AUDIT_LOG_DIR, AUDIT_LOG_FILE, _configured_key
    if log_dir:
        AUDIT_LOG_DIR = Path(log_dir)
        AUDIT_LOG_FILE = AUDIT_LOG_DIR / "admin-events.jsonl"
    if signing_key is not None:
        _configured_key = signing_key


def _get_signing_key() -> bytes:
    """Configured key first, then AUDIT_LOG_SIGNING_KEY from the environment."""
    if _configured_key:
        return _configured_key.strip().encode("utf-8")
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"), default=str)
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_admin_event(
    event_type: EventType,
    target_id: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append a signed event to the audit trail.

    Args:
        event_type: Kind of mutation (user_create, role_update, ...)
        target_id: Identifier of the user or role affected
        operator: Who performed the operation (API caller, cli, system)
        details: Additional context (deltas, correlation id, error)
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "target_id": target_id,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False, default=str) + "\n")

    AUDIT_LOG_FILE.chmod(0o600)


def safe_log_admin_event(
    event_type: EventType,
    target_id: str,
    *,
    operator: str = "system",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log an admin event, reporting (not raising) audit failures.

    Audit trail problems must never turn a completed store mutation into an
    error response.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_admin_event(event_type, target_id, operator=operator, details=details, success=success)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Failed to log %s event for %s: %s", event_type, target_id, e)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            stored_sig = event.pop("signature", "")
            if not stored_sig:
                continue
            if hmac.compare_digest(stored_sig, _sign_event(event)):
                valid += 1

    return total, valid
