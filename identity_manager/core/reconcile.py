"""Reconciliation of many-to-many associations (user↔role, user↔claim, role↔claim).

A client submits the desired association set for one principal; the engine
diffs it against the persisted actual set and applies only the difference.

    delta = reconcile_roles(user.id, desired_role_ids, user.role_ids)
    apply(user.id, delta, add=store.add_user_role, remove=store.remove_user_role)

Validation is atomic (claim types are translated before anything is touched);
the apply phase is not. Each mutation is submitted independently, and a failure
stops the sequence without rolling back what already landed. Running the same
reconciliation again against the new actual state only yields what is left.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Hashable, Iterable, TypeVar

from .claim_types import ClaimTypeRegistry
from .errors import PartialUpdateError
from .models import Claim

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class Delta(Generic[K]):
    """Keys to add and keys to remove; disjoint by construction."""

    to_add: frozenset = frozenset()
    to_remove: frozenset = frozenset()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove

    def __len__(self) -> int:
        return len(self.to_add) + len(self.to_remove)


@dataclass
class ApplyResult:
    """Mutations that reached the store, in submission order."""

    principal_id: str
    added: list = field(default_factory=list)
    removed: list = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def diff(desired: Iterable[K], actual: Iterable[K]) -> Delta:
    """Compute ``desired − actual`` and ``actual − desired`` by hashed key."""
    desired_set = frozenset(desired)
    actual_set = frozenset(actual)
    return Delta(to_add=desired_set - actual_set, to_remove=actual_set - desired_set)


def reconcile_roles(principal_id: str, desired: Iterable[str], actual: Iterable[str]) -> Delta:
    """Role membership delta keyed by role id."""
    delta = diff(desired, actual)
    logger.debug(
        "Role delta for %s: +%d -%d", principal_id, len(delta.to_add), len(delta.to_remove)
    )
    return delta


def translate_claims(
    desired: Iterable[tuple[str, str]], registry: ClaimTypeRegistry
) -> frozenset:
    """Translate (symbolic type, value) pairs into canonical Claims.

    Raises:
        UnknownClaimType: On the first symbolic type missing from the registry
    """
    return frozenset(Claim(registry.canonical_of(symbolic), value) for symbolic, value in desired)


def reconcile_claims(
    principal_id: str,
    desired: Iterable[tuple[str, str]],
    actual: Iterable[Claim],
    registry: ClaimTypeRegistry,
) -> Delta:
    """Claim delta keyed by (canonical type, value).

    Raises:
        UnknownClaimType: Before any comparison if a desired type is unknown
    """
    delta = diff(translate_claims(desired, registry), (Claim(*claim) for claim in actual))
    logger.debug(
        "Claim delta for %s: +%d -%d", principal_id, len(delta.to_add), len(delta.to_remove)
    )
    return delta


def _ordered(keys: frozenset) -> list:
    try:
        return sorted(keys)
    except TypeError:
        return sorted(keys, key=repr)


def apply(
    principal_id: str,
    delta: Delta,
    add: Callable[[str, Any], None],
    remove: Callable[[str, Any], None],
) -> ApplyResult:
    """Submit a delta to the store, removals first, each key independently.

    Raises:
        PartialUpdateError: When a mutation fails; carries what was applied
            and what is still pending. Nothing is rolled back.
    """
    plan = [("remove", key) for key in _ordered(delta.to_remove)]
    plan += [("add", key) for key in _ordered(delta.to_add)]

    result = ApplyResult(principal_id)
    applied: list[tuple[str, Any]] = []
    for position, (operation, key) in enumerate(plan):
        try:
            if operation == "add":
                add(principal_id, key)
                result.added.append(key)
            else:
                remove(principal_id, key)
                result.removed.append(key)
        except Exception as exc:
            logger.error(
                "Association %s of %r on %s failed after %d applied change(s): %s",
                operation, key, principal_id, len(applied), exc,
            )
            raise PartialUpdateError(principal_id, applied, plan[position:], exc) from exc
        applied.append((operation, key))
    return result
