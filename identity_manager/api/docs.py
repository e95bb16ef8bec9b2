"""Documentation blueprint exposing the admin API OpenAPI description."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from flask import Blueprint, Response, current_app, jsonify

bp = Blueprint("docs", __name__)


def _spec_path() -> Path:
    """Resolve the OpenAPI document path."""
    override = current_app.config.get("OPENAPI_SPEC_PATH")
    if override:
        return Path(override)
    return Path(current_app.root_path) / "openapi" / "identity_manager_openapi.yaml"


def _load_spec() -> dict[str, Any]:
    """Load the OpenAPI document from disk (YAML)."""
    path = _spec_path()
    if not path.exists():
        raise FileNotFoundError(f"OpenAPI spec not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle)


@bp.route("/openapi.json", methods=["GET"])
def openapi_document() -> Response:
    """Serve the OpenAPI document as JSON."""
    return jsonify(_load_spec())
