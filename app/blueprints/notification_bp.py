"""
Supplier Onboarding Portal
Notification Blueprint.

Provides:
    GET  /api/v1/notifications              actor + role notifications (paginated)
    GET  /api/v1/notifications/unread-count
    POST /api/v1/notifications/<id>/read
    POST /api/v1/notifications/read-all
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from app.auth import current_actor
from app.services.notification import NotificationService

logger = logging.getLogger(__name__)

notification_bp = Blueprint("notification_bp", __name__, url_prefix="/api/v1")


@notification_bp.route("/notifications", methods=["GET"])
def list_notifications():
    actor = current_actor()
    unread_only = request.args.get("unread_only", "false").lower() in ("1", "true", "yes")
    limit = min(request.args.get("limit", 50, type=int), 200)
    offset = max(request.args.get("offset", 0, type=int), 0)
    items, total = NotificationService.list_for_actor(
        actor.id, actor.role, unread_only=unread_only, limit=limit, offset=offset,
    )
    return jsonify({"items": [n.to_dict() for n in items], "total": total}), 200


@notification_bp.route("/notifications/unread-count", methods=["GET"])
def unread_count():
    actor = current_actor()
    return jsonify({"unread": NotificationService.unread_count(actor.id, actor.role)}), 200


@notification_bp.route("/notifications/<int:notification_id>/read", methods=["POST"])
def mark_read(notification_id):
    actor = current_actor()
    notif = NotificationService.mark_read(notification_id, actor.id, actor.role)
    return jsonify(notif.to_dict()), 200


@notification_bp.route("/notifications/read-all", methods=["POST"])
def mark_all_read():
    actor = current_actor()
    count = NotificationService.mark_all_read(actor.id, actor.role)
    return jsonify({"marked_read": count}), 200
