"""User administration endpoints.

Routes:
    GET    /api/users                 DataTables page of user rows
    POST   /api/users                 Create user
    PUT    /api/users/<id>            Update user (POST accepted for form posts)
    DELETE /api/users/<id>            Delete user
    POST   /api/users/<id>/password   Reset password
    GET    /api/claim-types           Symbolic claim type names
"""
from __future__ import annotations
import logging

from flask import Blueprint, Response, current_app, jsonify, request

from identity_manager.api import payloads
from identity_manager.api.context import get_service, operation_context
from identity_manager.api.datatables import page_response, parse_page_request

bp = Blueprint("users", __name__)

logger = logging.getLogger(__name__)


def _no_content() -> Response:
    return Response(status=204)


@bp.route("/users", methods=["GET"])
def list_users():
    """Serve one DataTables page of users.

    Query parameters:
        - draw, start, length
        - columns[i][data], order[0][column], order[0][dir]
        - search[value]: substring matched against email and userName
    """
    cfg = current_app.config["APP_CONFIG"]
    draw, page = parse_page_request(request.args, cfg.default_page_length)
    result = get_service().list_users(page)
    return jsonify(page_response(draw, result)), 200


@bp.route("/users", methods=["POST"])
def create_user():
    """Create a user; optional ``name`` becomes the display name claim."""
    payload = payloads.read_payload()
    get_service().create_user(
        payloads.text(payload, "userName"),
        payloads.text(payload, "email"),
        payloads.text(payload, "password"),
        name=payloads.text(payload, "name"),
        ctx=operation_context(),
    )
    return _no_content()


@bp.route("/users/<user_id>", methods=["PUT", "POST"])
def update_user(user_id: str):
    """Update email and lock state, then reconcile roles and claims.

    The request is a full form submit: ``email`` and ``locked`` are always
    replaced, so omitting them clears the email and unlocks the account.
    ``roles`` and ``claims`` are left unchanged when omitted.
    """
    payload = payloads.read_payload()
    report = get_service().update_user(
        user_id,
        payloads.text(payload, "email"),
        payloads.flag(payload, "locked"),
        role_ids=payloads.id_list(payload, "roles"),
        claims=payloads.claim_pairs(payload),
        ctx=operation_context(),
    )
    logger.debug("User %s updated: roles=%s claims=%s", user_id, report.roles, report.claims)
    return _no_content()


@bp.route("/users/<user_id>", methods=["DELETE"])
def delete_user(user_id: str):
    get_service().delete_user(user_id, ctx=operation_context())
    return _no_content()


@bp.route("/users/<user_id>/password", methods=["POST"])
def reset_password(user_id: str):
    payload = payloads.read_payload()
    get_service().reset_password(
        user_id,
        payloads.text(payload, "password"),
        payloads.text(payload, "verify"),
        ctx=operation_context(),
    )
    return _no_content()


@bp.route("/claim-types", methods=["GET"])
def claim_types():
    return jsonify(get_service().claim_type_names()), 200
