"""Dynamic query engine: filtered, sorted, paged views over principal collections.

The engine is handed an already materialised (or lazily enumerable) snapshot by
the caller and never touches the store itself. Processing order:

    validate → filter → sort → count → page

Validation (paging bounds, sort column) happens before any row is read, so a
bad request fails without a partial result.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence

from .errors import InvalidPageRequest
from .fields import FieldDescriptor, FieldRegistry

MATCH_ANY = "any"
MATCH_ALL = "all"
MATCH_MODES = (MATCH_ANY, MATCH_ALL)


@dataclass(frozen=True)
class PageRequest:
    """Filter text, sort column, direction and page window."""

    search: str = ""
    sort_column: Optional[str] = None
    descending: bool = False
    start: int = 0
    length: int = 10


@dataclass
class PageResult:
    """Ordered page plus unfiltered and filtered counts."""

    records_total: int
    records_filtered: int
    rows: list = field(default_factory=list)


def _sort_key(value: Any) -> tuple:
    # None sorts before every value in ascending order.
    return (value is not None, value if value is not None else 0)


class QueryEngine:
    """Runs page requests for one entity kind.

    Args:
        registry: Field registry of the entity kind
        searchable: Field names the free-text filter is matched against
        match: "any" (a row passes if one field contains the text) or
            "all" (every field must contain it)
        id_field: Field used as the tie-breaker for stable ordering
    """

    def __init__(
        self,
        registry: FieldRegistry,
        searchable: Sequence[str],
        match: str = MATCH_ANY,
        id_field: str = "id",
    ):
        if match not in MATCH_MODES:
            raise ValueError(f"match must be one of {MATCH_MODES}, got '{match}'")
        if not searchable:
            raise ValueError("At least one searchable field is required")
        self.registry = registry
        self.match = match
        self.searchable: tuple[FieldDescriptor, ...] = tuple(registry.resolve(name) for name in searchable)
        self.id_field = registry.resolve(id_field)

    def query(self, collection: Iterable, request: PageRequest) -> PageResult:
        if request.start < 0:
            raise InvalidPageRequest(f"start must be >= 0, got {request.start}")
        if request.length <= 0:
            raise InvalidPageRequest(f"length must be > 0, got {request.length}")

        sort_field = self.registry.resolve(request.sort_column) if request.sort_column else None

        rows = list(collection)
        records_total = len(rows)

        filtered = self._filter(rows, request.search)
        ordered = self._sort(filtered, sort_field, request.descending)

        page = ordered[request.start:request.start + request.length]
        return PageResult(
            records_total=records_total,
            records_filtered=len(filtered),
            rows=page,
        )

    def _filter(self, rows: list, search: Optional[str]) -> list:
        if search is None or not search.strip():
            return rows
        combine = any if self.match == MATCH_ANY else all
        return [row for row in rows if combine(self._contains(f, row, search) for f in self.searchable)]

    @staticmethod
    def _contains(descriptor: FieldDescriptor, row: Any, search: str) -> bool:
        value = descriptor.value_of(row)
        if value is None:
            return False
        return search in str(value)

    def _sort(self, rows: list, sort_field: Optional[FieldDescriptor], descending: bool) -> list:
        # Order by id first; the second sort is stable so ties keep id order
        # in both directions.
        ordered = sorted(rows, key=lambda row: _sort_key(self.id_field.value_of(row)))
        if sort_field is None or sort_field is self.id_field:
            if descending:
                ordered.reverse()
            return ordered
        ordered.sort(key=lambda row: _sort_key(sort_field.value_of(row)), reverse=descending)
        return ordered
