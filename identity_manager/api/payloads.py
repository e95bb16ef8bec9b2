"""Mutation request bodies: JSON objects or form-encoded fields.

Form conventions:
    - ``roles`` repeated (or ``roles[]``); a single blank ``roles`` clears
    - ``claims[i][key]`` / ``claims[i][value]`` (or ``claims[i].key``); a
      single blank ``claims`` clears
    - ``locked`` is true for ``true``, ``on``, ``1`` or ``yes``

A collection key that is absent altogether leaves the association unchanged.
"""
from __future__ import annotations
import re
from typing import Any, Mapping, Optional

from flask import request
from werkzeug.datastructures import MultiDict

from identity_manager.core.errors import InvalidInput

JSON_MAX_SIZE_BYTES = 65536  # 64 KB
_TRUE_VALUES = {"true", "on", "1", "yes"}
_CLAIM_FIELD = re.compile(r"^claims\[(\d+)\](?:\[(key|value)\]|\.(key|value))$")


def read_payload() -> Mapping[str, Any]:
    """Return the JSON object body, or the form fields when the body is not JSON."""
    if request.is_json:
        if request.content_length and request.content_length > JSON_MAX_SIZE_BYTES:
            raise InvalidInput("Request payload exceeds maximum allowed size (64 KB)")
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise InvalidInput("Request body must be a JSON object.")
        return payload
    return request.form


def text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"'{key}' must be a string.")
    return value


def flag(payload: Mapping[str, Any], key: str) -> bool:
    value = payload.get(key)
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def id_list(payload: Mapping[str, Any], key: str) -> Optional[list[str]]:
    """Role ids from a JSON array or repeated form fields."""
    if isinstance(payload, MultiDict):
        if key not in payload and f"{key}[]" not in payload:
            return None
        values = payload.getlist(key) + payload.getlist(f"{key}[]")
        return [v for v in values if v.strip()]

    if key not in payload:
        return None
    values = payload[key]
    if values is None:
        return []
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise InvalidInput(f"'{key}' must be a list of strings.")
    return values


def claim_pairs(payload: Mapping[str, Any]) -> Optional[list[tuple[str, str]]]:
    """Desired claims as (symbolic type, value) pairs.

    JSON accepts ``[{"key": ..., "value": ...}]`` (the listing row shape) or
    ``[[key, value], ...]``.
    """
    if isinstance(payload, MultiDict):
        return _form_claims(payload)

    if "claims" not in payload:
        return None
    entries = payload["claims"] or []
    if not isinstance(entries, list):
        raise InvalidInput("'claims' must be a list.")
    pairs = []
    for entry in entries:
        if isinstance(entry, dict):
            key, value = entry.get("key"), entry.get("value")
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            key, value = entry
        else:
            raise InvalidInput("Each claim must be an object with 'key' and 'value'.")
        pairs.append(_claim_pair(key, value))
    return pairs


def _form_claims(form: MultiDict) -> Optional[list[tuple[str, str]]]:
    slots: dict[int, dict[str, str]] = {}
    for name in form.keys():
        match = _CLAIM_FIELD.match(name)
        if match:
            part = match.group(2) or match.group(3)
            slots.setdefault(int(match.group(1)), {})[part] = form.get(name)
    if not slots:
        return [] if "claims" in form else None
    return [_claim_pair(slot.get("key"), slot.get("value")) for _, slot in sorted(slots.items())]


def _claim_pair(key: Any, value: Any) -> tuple[str, str]:
    if not isinstance(key, str) or not key.strip():
        raise InvalidInput("Claim key is required.")
    if value is None:
        raise InvalidInput(f"Claim '{key}' has no value.")
    return key.strip(), str(value)
