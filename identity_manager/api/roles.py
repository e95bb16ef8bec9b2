"""Role administration endpoints.

Routes:
    GET    /api/roles            DataTables page of role rows
    POST   /api/roles            Create role
    PUT    /api/roles/<id>       Rename role and reconcile claims (POST accepted)
    DELETE /api/roles/<id>       Delete role
    GET    /api/roles/options    {role id: role name} for pickers
"""
from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request

from identity_manager.api import payloads
from identity_manager.api.context import get_service, operation_context
from identity_manager.api.datatables import page_response, parse_page_request

bp = Blueprint("roles", __name__)


@bp.route("/roles", methods=["GET"])
def list_roles():
    """Serve one DataTables page of roles (search matches the role name)."""
    cfg = current_app.config["APP_CONFIG"]
    draw, page = parse_page_request(request.args, cfg.default_page_length)
    result = get_service().list_roles(page)
    return jsonify(page_response(draw, result)), 200


@bp.route("/roles/options", methods=["GET"])
def role_options():
    # Dict order is preserved by jsonify only when key sorting is off
    return current_app.response_class(
        current_app.json.dumps(get_service().role_options(), sort_keys=False),
        mimetype="application/json",
    )


@bp.route("/roles", methods=["POST"])
def create_role():
    payload = payloads.read_payload()
    get_service().create_role(
        payloads.text(payload, "name"),
        description=payloads.text(payload, "description"),
        ctx=operation_context(),
    )
    return Response(status=204)


@bp.route("/roles/<role_id>", methods=["PUT", "POST"])
def update_role(role_id: str):
    payload = payloads.read_payload()
    get_service().update_role(
        role_id,
        payloads.text(payload, "name"),
        claims=payloads.claim_pairs(payload),
        description=payloads.text(payload, "description"),
        ctx=operation_context(),
    )
    return Response(status=204)


@bp.route("/roles/<role_id>", methods=["DELETE"])
def delete_role(role_id: str):
    get_service().delete_role(role_id, ctx=operation_context())
    return Response(status=204)
