"""Principal and association records exchanged between the core and identity stores."""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple, Optional


class Claim(NamedTuple):
    """A claim attached to a user or role; ``type`` is always canonical."""

    type: str
    value: str


@dataclass
class User:
    """Account record as read from the identity store."""

    id: str
    username: str
    email: Optional[str] = None
    locked_out: bool = False
    email_verified: bool = False
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created: Optional[datetime] = None
    role_ids: set[str] = field(default_factory=set)
    claims: set[Claim] = field(default_factory=set)

    def claim_value(self, claim_type: str) -> Optional[str]:
        """Return the lowest value of the given canonical claim type, if any."""
        values = sorted(c.value for c in self.claims if c.type == claim_type)
        return values[0] if values else None


@dataclass
class Role:
    """Role record as read from the identity store."""

    id: str
    name: str
    description: Optional[str] = None
    claims: set[Claim] = field(default_factory=set)
