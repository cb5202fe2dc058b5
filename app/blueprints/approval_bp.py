"""
Approval Blueprint — reviewer transitions on supplier applications.

Endpoints:
    POST /api/v1/approvals/<id>/approve               { comments?, expected_status? }
    POST /api/v1/approvals/<id>/reject                { comments, expected_status? }
    POST /api/v1/approvals/<id>/request-info          { comments, expected_status? }
    POST /api/v1/approvals/<id>/assign-vendor-number  { vendor_number, expected_status? }
    GET  /api/v1/approvals/tasks                      "my tasks" for the actor's role
    GET  /api/v1/approvals/profile-updates            pending profile update requests
    POST /api/v1/approvals/profile-updates/<req_id>/approve  { comments?, expected_status? }
    POST /api/v1/approvals/profile-updates/<req_id>/reject   { comments, expected_status? }

Role/stage checks are NOT done here: the services validate every
transition against its status machine and raise PolicyError. The pending
profile update list is the one read restricted to reviewer roles here.
"""

import logging

from flask import Blueprint, jsonify, request

from app.auth import current_actor, require_role
from app.services import profile_update_service, supplier_service
from app.services.application_lifecycle import transition_application

logger = logging.getLogger(__name__)

approval_bp = Blueprint("approval", __name__, url_prefix="/api/v1")


def _transition(application_id, action):
    data = request.get_json(silent=True) or {}
    result = transition_application(
        application_id, action, current_actor(),
        comments=data.get("comments"),
        vendor_number=data.get("vendor_number"),
        expected_status=data.get("expected_status"),
    )
    return jsonify({"status": result["new_status"], **result}), 200


@approval_bp.route("/approvals/<application_id>/approve", methods=["POST"])
def approve(application_id):
    return _transition(application_id, "approve")


@approval_bp.route("/approvals/<application_id>/reject", methods=["POST"])
def reject(application_id):
    return _transition(application_id, "reject")


@approval_bp.route("/approvals/<application_id>/request-info", methods=["POST"])
def request_info(application_id):
    return _transition(application_id, "request_info")


@approval_bp.route("/approvals/<application_id>/assign-vendor-number", methods=["POST"])
def assign_vendor_number(application_id):
    return _transition(application_id, "assign_vendor_number")


@approval_bp.route("/approvals/tasks", methods=["GET"])
def my_tasks():
    """Applications awaiting an action from the caller's role."""
    items = [a.to_dict() for a in supplier_service.list_tasks(current_actor())]
    return jsonify({"items": items, "total": len(items)}), 200


# ── Profile update requests ────────────────────────────────────────────────────


@approval_bp.route("/approvals/profile-updates", methods=["GET"])
@require_role("procurement", "super_admin")
def pending_profile_updates():
    items = [u.to_dict() for u in profile_update_service.list_pending()]
    return jsonify({"items": items, "total": len(items)}), 200


def _decide(request_id, action):
    data = request.get_json(silent=True) or {}
    update = profile_update_service.decide_profile_update(
        request_id, action, current_actor(),
        comments=data.get("comments"),
        expected_status=data.get("expected_status"),
    )
    return jsonify(update.to_dict()), 200


@approval_bp.route("/approvals/profile-updates/<request_id>/approve", methods=["POST"])
def approve_profile_update(request_id):
    return _decide(request_id, "approve")


@approval_bp.route("/approvals/profile-updates/<request_id>/reject", methods=["POST"])
def reject_profile_update(request_id):
    return _decide(request_id, "reject")
