"""
Contract Blueprint.

Endpoints:
    POST /api/v1/contracts                         create for an approved supplier
    GET  /api/v1/contracts/expiring?days=30        active contracts nearing end date
    GET  /api/v1/contracts/<id>                    contract + history
    POST /api/v1/contracts/<id>/signed-document    multipart: file
    POST /api/v1/contracts/<id>/activate|terminate|renew|expire
         Body: { comments?, expected_status? }
"""

import logging

from flask import Blueprint, jsonify, request

from app.auth import current_actor, require_role
from app.services import contract_lifecycle
from app.utils.errors import E, api_error

logger = logging.getLogger(__name__)

contract_bp = Blueprint("contract", __name__, url_prefix="/api/v1")

_TRANSITION_ACTIONS = ("activate", "terminate", "renew", "expire")


@contract_bp.route("/contracts", methods=["POST"])
def create_contract():
    data = request.get_json(silent=True)
    if data is None:
        return api_error(E.VALIDATION_INVALID, "JSON body is required")
    if not data.get("supplier_id"):
        return api_error(E.VALIDATION_REQUIRED, "supplier_id is required")
    contract = contract_lifecycle.create_contract(current_actor(), data)
    return jsonify(contract.to_dict()), 201


@contract_bp.route("/contracts/expiring", methods=["GET"])
@require_role("procurement", "legal", "super_admin", "management")
def expiring_contracts():
    days = request.args.get("days", contract_lifecycle.EXPIRY_WARNING_DAYS, type=int)
    items = [c.to_dict() for c in contract_lifecycle.expiring_contracts(days=days)]
    return jsonify({"items": items, "total": len(items), "days": days}), 200


@contract_bp.route("/contracts/<contract_id>", methods=["GET"])
def get_contract(contract_id):
    contract = contract_lifecycle.get_for_actor(contract_id, current_actor())
    return jsonify(contract.to_dict(include_history=True)), 200


@contract_bp.route("/contracts/<contract_id>/signed-document", methods=["POST"])
def upload_signed_document(contract_id):
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return api_error(E.VALIDATION_REQUIRED, "file is required")
    contract = contract_lifecycle.attach_signed_document(contract_id, current_actor(), upload.filename)
    return jsonify(contract.to_dict()), 200


@contract_bp.route("/contracts/<contract_id>/<action>", methods=["POST"])
def transition_contract(contract_id, action):
    if action not in _TRANSITION_ACTIONS:
        return api_error(E.NOT_FOUND, f"Unknown contract action '{action}'")
    data = request.get_json(silent=True) or {}
    result = contract_lifecycle.transition_contract(
        contract_id, action, current_actor(),
        comments=data.get("comments"),
        expected_status=data.get("expected_status"),
    )
    return jsonify({"status": result["new_status"], **result}), 200
