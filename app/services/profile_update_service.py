"""
Profile Update Service — field changes requested by approved suppliers.

Once onboarded, a supplier cannot edit its application any more. Contact and
banking details change through a request that procurement approves or
rejects; the field keeps its current value until approval.

Rules:
    - only the owner requests, only while the application is approved
    - one pending request per field
    - procurement decides (PROFILE_UPDATE_TRANSITIONS); rejection needs comments
    - every request and decision adds an approval history entry and a
      notification, committed together with the change
"""

import logging
from datetime import datetime, timezone

from app.core.exceptions import ConflictError, NotFoundError, PolicyError, ValidationError
from app.models import db
from app.models.supplier import ApprovalHistoryEntry, ProfileUpdateRequest
from app.services.draft_payload import clean_payload
from app.services.notification import NotificationService
from app.services.supplier_service import get_for_actor
from app.utils.helpers import commit_or_raise
from app.workflow.fields import PROFILE_UPDATE_FIELDS
from app.workflow.status_machine import (
    OWNER_ROLE,
    PROFILE_UPDATE_COMMENT_REQUIRED,
    PROFILE_UPDATE_HISTORY_ACTIONS,
    require_profile_update_transition,
)

logger = logging.getLogger(__name__)


def _history(application, action, actor, comments, now):
    db.session.add(ApprovalHistoryEntry(
        entity_type="supplier",
        entity_id=application.id,
        action=PROFILE_UPDATE_HISTORY_ACTIONS[action],
        from_status=application.status,
        to_status=application.status,
        actor_id=actor.id,
        actor_role=actor.role,
        comments=comments,
        timestamp=now,
    ))


def request_profile_update(application_id, actor, field, new_value, reason=None):
    """Record a pending change of ``field`` to ``new_value``. Returns the request."""
    if actor.role != OWNER_ROLE:
        raise PolicyError("request_profile_update", None,
                          "Only supplier users can request profile updates", role=actor.role)
    application = get_for_actor(application_id, actor)
    if application.status != "approved":
        raise PolicyError("request_profile_update", application.status,
                          "Profile updates are only possible once the application is approved")

    if field not in PROFILE_UPDATE_FIELDS:
        raise ValidationError(
            f"'{field}' cannot be changed through a profile update",
            details={"field": f"must be one of {', '.join(PROFILE_UPDATE_FIELDS)}"},
        )
    new_value = clean_payload({field: new_value})[field]
    old_value = getattr(application, field)
    if new_value == old_value:
        raise ValidationError(f"{field} already has this value", details={field: "unchanged"})

    pending = ProfileUpdateRequest.query.filter_by(
        application_id=application.id, field=field, status="pending",
    ).first()
    if pending is not None:
        raise ConflictError("ProfileUpdateRequest", "field", field,
                            message=f"A change of {field} is already pending review")

    now = datetime.now(timezone.utc)
    reason = (reason or "").strip() or None
    update = ProfileUpdateRequest(
        application_id=application.id,
        field=field,
        old_value=old_value,
        new_value=new_value,
        reason=reason,
        requested_by=actor.id,
        requested_at=now,
    )
    db.session.add(update)
    _history(application, "request", actor, reason or f"Requested change of {field}", now)
    NotificationService.queue_for_role(
        "procurement",
        title="Profile Update Request",
        message=f"{application.supplier_name or 'A supplier'} has requested a change of {field}",
        category="profile_update_requested",
        entity_type="supplier",
        entity_id=application.id,
    )
    commit_or_raise("ProfileUpdateRequest")

    logger.info(
        "Profile update requested for %s", field,
        extra={"event_type": "profile_update_requested", "application_id": application.id},
    )
    return update


def decide_profile_update(request_id, action, actor, *, comments=None, expected_status=None):
    """Approve or reject a pending request. Approval writes the new value.

    Raises:
        NotFoundError, ConflictError (request already decided), PolicyError
    """
    update = db.session.get(ProfileUpdateRequest, request_id)
    if update is None:
        raise NotFoundError("ProfileUpdateRequest", request_id)
    previous_status = update.status
    if expected_status is not None and expected_status != previous_status:
        raise ConflictError("ProfileUpdateRequest", "status", previous_status, expected=expected_status)

    target = require_profile_update_transition(previous_status, action, actor.role)
    comments = (comments or "").strip() or None
    if action in PROFILE_UPDATE_COMMENT_REQUIRED and not comments:
        raise PolicyError(action, previous_status, "comments are required")

    application = update.application
    now = datetime.now(timezone.utc)
    if action == "approve":
        setattr(application, update.field, update.new_value)
    update.status = target
    update.processed_by = actor.id
    update.processed_at = now
    update.decision_comments = comments

    _history(application, action, actor, comments or f"Change of {update.field} {target}", now)
    if action == "approve":
        NotificationService.queue(
            recipient=application.owner_id,
            title="Profile Update Approved",
            message=f"Your request to update {update.field} has been approved",
            category="profile_update_approved",
            entity_type="supplier",
            entity_id=application.id,
        )
    else:
        NotificationService.queue(
            recipient=application.owner_id,
            title="Profile Update Rejected",
            message=f"Your request to update {update.field} has been rejected. Reason: {comments}",
            category="profile_update_rejected",
            entity_type="supplier",
            entity_id=application.id,
        )
    commit_or_raise("ProfileUpdateRequest", update.id)

    logger.info(
        "Profile update %s: %s -> %s", update.field, previous_status, target,
        extra={"event_type": "profile_update_decided", "application_id": application.id,
               "action": action, "actor_role": actor.role},
    )
    return update


def list_for_application(application_id, actor):
    application = get_for_actor(application_id, actor)
    return list(application.profile_update_requests)


def list_pending():
    """Pending requests, oldest first."""
    return (
        ProfileUpdateRequest.query
        .filter_by(status="pending")
        .order_by(ProfileUpdateRequest.requested_at.asc())
        .all()
    )
