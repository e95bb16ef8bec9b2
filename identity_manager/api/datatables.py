"""DataTables server-side protocol: query-string parsing and response shaping.

DataTables submits nested parameters either in bracket form
(``columns[0][data]``, ``order[0][column]``, ``search[value]``) or, depending on
the serializer, in dotted form (``columns[0].data``). Both are accepted.
"""
from __future__ import annotations
import re
from typing import Mapping, Optional

from identity_manager.core.errors import InvalidPageRequest
from identity_manager.core.query import PageRequest, PageResult

_COLUMN_DATA = re.compile(r"^columns\[(\d+)\](?:\[data\]|\.data)$")


def _lookup(args: Mapping[str, str], outer: str, inner: str) -> Optional[str]:
    """Read ``outer[inner]`` or ``outer.inner`` from the query args."""
    value = args.get(f"{outer}[{inner}]")
    if value is None:
        value = args.get(f"{outer}.{inner}")
    return value


def _int_arg(name: str, raw: Optional[str], default: int) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidPageRequest(f"{name} must be an integer, got '{raw}'") from None


def _columns(args: Mapping[str, str]) -> dict[int, str]:
    columns = {}
    for key in args.keys():
        match = _COLUMN_DATA.match(key)
        if match:
            columns[int(match.group(1))] = args.get(key) or ""
    return columns


def parse_page_request(args: Mapping[str, str], default_length: int = 10) -> tuple[int, PageRequest]:
    """Translate DataTables query args into (draw, PageRequest).

    Raises:
        InvalidPageRequest: Non-integer paging values, or an order index that
            does not point at a submitted column
    """
    draw = _int_arg("draw", args.get("draw"), 0)
    start = _int_arg("start", args.get("start"), 0)
    length = _int_arg("length", args.get("length"), default_length)
    search = _lookup(args, "search", "value") or ""

    sort_column = None
    descending = False
    order_index = _lookup(args, "order[0]", "column")
    if order_index is not None and order_index.strip():
        index = _int_arg("order[0][column]", order_index, 0)
        columns = _columns(args)
        if index not in columns:
            raise InvalidPageRequest(f"order[0][column]={index} does not match a submitted column")
        sort_column = columns[index]
        direction = _lookup(args, "order[0]", "dir") or "asc"
        descending = direction != "asc"

    return draw, PageRequest(
        search=search,
        sort_column=sort_column,
        descending=descending,
        start=start,
        length=length,
    )


def page_response(draw: int, result: PageResult) -> dict:
    return {
        "draw": draw,
        "recordsTotal": result.records_total,
        "recordsFiltered": result.records_filtered,
        "data": result.rows,
    }
