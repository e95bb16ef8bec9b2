"""Input validation helpers for user and role data."""
from __future__ import annotations
import re

from .errors import InvalidInput

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9@._+-]{1,256}$")
ROLE_NAME_MAX_LENGTH = 256
EMAIL_MAX_LENGTH = 254


def validate_username(raw: str | None) -> str:
    """Validate username.

    Args:
        raw: Raw username input

    Returns:
        Trimmed username

    Raises:
        InvalidInput: If username is missing or uses unsupported characters
    """
    username = (raw or "").strip()
    if not username:
        raise InvalidInput("User name is required.")
    if not USERNAME_PATTERN.match(username):
        raise InvalidInput(
            f"User name '{username}' is invalid, can only contain letters, digits and @._+-"
        )
    return username


def validate_email(raw: str | None, required: bool = True) -> str | None:
    """Validate email address.

    Returns:
        Trimmed email, or None when optional and blank

    Raises:
        InvalidInput: If email is invalid
    """
    email = (raw or "").strip()
    if not email:
        if required:
            raise InvalidInput("Email is required.")
        return None
    if len(email) > EMAIL_MAX_LENGTH:
        raise InvalidInput("Email exceeds maximum length.")
    local, _, domain = email.rpartition("@")
    if not local or not domain or "." not in domain:
        raise InvalidInput(f"Email '{email}' is invalid.")
    return email


def validate_role_name(raw: str | None) -> str:
    name = (raw or "").strip()
    if not name:
        raise InvalidInput("Role name is required.")
    if len(name) > ROLE_NAME_MAX_LENGTH:
        raise InvalidInput("Role name exceeds maximum length.")
    return name


def validate_password_pair(password: str | None, verify: str | None) -> str:
    """Check that a new password was entered twice identically."""
    if not password:
        raise InvalidInput("Password is required.")
    if password != verify:
        raise InvalidInput("Passwords entered do not match.")
    return password
