"""
Supplier Application Blueprint.

HTTP surface of the ApplicationStore used by the supplier-side form.

Endpoints:
    POST   /api/v1/suppliers/drafts                 create draft (supplier)
    PUT    /api/v1/suppliers/<id>/draft             replace-on-write save (owner)
    POST   /api/v1/suppliers/<id>/submit            submit transition (owner)
           Body: { "application": {...payload...}, "expected_status": "draft" }
    GET    /api/v1/suppliers/<id>                   record + documents + history
    GET    /api/v1/suppliers/mine                   owner's applications
    POST   /api/v1/suppliers/<id>/documents         multipart: file, slot?, document_type?
    DELETE /api/v1/suppliers/documents/<doc_id>     explicit removal
    POST   /api/v1/suppliers/documents/<doc_id>/status
           Body: { "status": "approved", "notes": "..." }  (procurement, legal, super_admin)
    POST   /api/v1/suppliers/<id>/profile-updates   { field, new_value, reason? } (owner, approved)
    GET    /api/v1/suppliers/<id>/profile-updates   requests for one application

Layer contract:
    - Blueprint: parse input, resolve actor, call service, return JSON.
    - NO db.session calls here; writes are owned by supplier_service and
      profile_update_service.
    - Exceptions are mapped to responses by register_error_handlers.
"""

import logging

from flask import Blueprint, jsonify, request

from app.auth import current_actor, require_role
from app.services import profile_update_service, supplier_service
from app.utils.errors import E, api_error
from app.workflow.status_machine import OWNER_ROLE, available_actions

logger = logging.getLogger(__name__)

supplier_bp = Blueprint("supplier", __name__, url_prefix="/api/v1")


def _record(application, actor):
    d = application.to_dict(include_children=True)
    d["available_actions"] = available_actions(
        application.status, actor.role, vendor_number=application.vendor_number,
    )
    return d


# ── Drafts ─────────────────────────────────────────────────────────────────────


@supplier_bp.route("/suppliers/drafts", methods=["POST"])
@require_role(OWNER_ROLE)
def create_draft():
    """Create a draft from the first save payload. Returns 201 with the record."""
    data = request.get_json(silent=True)
    if data is None:
        return api_error(E.VALIDATION_INVALID, "JSON body is required")
    application = supplier_service.create_draft(current_actor(), data)
    return jsonify(_record(application, current_actor())), 201


@supplier_bp.route("/suppliers/<application_id>/draft", methods=["PUT"])
@require_role(OWNER_ROLE)
def update_draft(application_id):
    data = request.get_json(silent=True)
    if data is None:
        return api_error(E.VALIDATION_INVALID, "JSON body is required")
    application = supplier_service.update_draft(application_id, current_actor(), data)
    return jsonify(_record(application, current_actor())), 200


@supplier_bp.route("/suppliers/<application_id>/submit", methods=["POST"])
@require_role(OWNER_ROLE)
def submit_application(application_id):
    """Submit for review. The response carries the status decided here."""
    data = request.get_json(silent=True) or {}
    result = supplier_service.submit(
        application_id, current_actor(),
        payload=data.get("application"),
        expected_status=data.get("expected_status"),
    )
    return jsonify({"status": result["new_status"], **result}), 200


# ── Reads ──────────────────────────────────────────────────────────────────────


@supplier_bp.route("/suppliers/mine", methods=["GET"])
def list_my_applications():
    actor = current_actor()
    items = [a.to_dict() for a in supplier_service.list_mine(actor)]
    return jsonify({"items": items, "total": len(items)}), 200


@supplier_bp.route("/suppliers/<application_id>", methods=["GET"])
def get_application(application_id):
    actor = current_actor()
    application = supplier_service.get_for_actor(application_id, actor)
    return jsonify(_record(application, actor)), 200


# ── Documents ──────────────────────────────────────────────────────────────────


@supplier_bp.route("/suppliers/<application_id>/documents", methods=["POST"])
@require_role(OWNER_ROLE)
def upload_document(application_id):
    """Record an uploaded document (multipart/form-data)."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return api_error(E.VALIDATION_REQUIRED, "file is required")

    content = upload.read()
    document = supplier_service.upload_document(
        application_id, current_actor(),
        filename=upload.filename,
        content_length=len(content),
        mime_type=upload.mimetype,
        slot=request.form.get("slot") or None,
        document_type=request.form.get("document_type") or None,
    )
    return jsonify(document.to_dict()), 201


@supplier_bp.route("/suppliers/documents/<document_id>", methods=["DELETE"])
@require_role(OWNER_ROLE)
def delete_document(document_id):
    supplier_service.delete_document(document_id, current_actor())
    return jsonify({"deleted": document_id}), 200


@supplier_bp.route("/suppliers/documents/<document_id>/status", methods=["POST"])
@require_role("procurement", "legal", "super_admin")
def review_document(document_id):
    """Record a reviewer's verdict on a document. Body: { status, notes? }."""
    data = request.get_json(silent=True) or {}
    if not data.get("status"):
        return api_error(E.VALIDATION_REQUIRED, "status is required")
    document = supplier_service.review_document(
        document_id, current_actor(), data["status"], data.get("notes"),
    )
    return jsonify(document.to_dict()), 200


# ── Profile updates ────────────────────────────────────────────────────────────


@supplier_bp.route("/suppliers/<application_id>/profile-updates", methods=["POST"])
@require_role(OWNER_ROLE)
def request_profile_update(application_id):
    data = request.get_json(silent=True) or {}
    if not data.get("field"):
        return api_error(E.VALIDATION_REQUIRED, "field is required")
    update = profile_update_service.request_profile_update(
        application_id, current_actor(), data["field"], data.get("new_value"),
        reason=data.get("reason"),
    )
    return jsonify(update.to_dict()), 201


@supplier_bp.route("/suppliers/<application_id>/profile-updates", methods=["GET"])
def list_profile_updates(application_id):
    updates = profile_update_service.list_for_application(application_id, current_actor())
    items = [u.to_dict() for u in updates]
    return jsonify({"items": items, "total": len(items)}), 200
