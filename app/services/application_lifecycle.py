"""
Supplier Application Lifecycle Service.

Authoritative executor of the application status machine:
  - Staleness check (expected_status)
  - Transition + role validation (APPLICATION_TRANSITIONS)
  - Mandatory inputs (comments, vendor number, attached documents)
  - Side effects (timestamps, SLA metrics, approval stage, vendor number)
  - Exactly one ApprovalHistoryEntry per transition
  - Notifications to the owner / next reviewer role

State change, history entry and notifications are committed together or
not at all.

Usage:
    from app.services.application_lifecycle import transition_application

    result = transition_application(
        application_id="abc",
        action="approve",
        actor=Actor("u-1", "procurement"),
        comments="Documents verified",
    )
"""

import logging
import math
from datetime import datetime, timedelta, timezone

from flask import current_app

from app.core.exceptions import ConflictError, NotFoundError, PolicyError, ValidationError
from app.models import db
from app.models.supplier import ApprovalHistoryEntry, SupplierApplication, as_utc
from app.services.approval_policy import default_policy
from app.services.draft_payload import apply_payload, clean_payload
from app.services.notification import NotificationService
from app.utils.helpers import commit_or_raise
from app.workflow.fields import FILE_SLOTS, LIST_FILE_SLOTS
from app.workflow.status_machine import (
    APPLICATION_COMMENT_REQUIRED,
    HISTORY_ACTIONS,
    OWNER_ROLE,
    ROUTED,
    require_transition,
)

logger = logging.getLogger(__name__)

_DEFAULT_SLA_DAYS = 14


def _sla_days():
    return current_app.config.get("SLA_DAYS", _DEFAULT_SLA_DAYS)


def referenced_documents(application, slot=None):
    """Documents a file slot still points at. Removed files drop out."""
    documents = []
    for doc in application.documents:
        if doc.slot is None or (slot is not None and doc.slot != slot):
            continue
        value = getattr(application, doc.slot)
        names = (value or []) if doc.slot in LIST_FILE_SLOTS else [value]
        if doc.file_name in names or doc.original_name in names:
            documents.append(doc)
    return documents


def has_attached_documents(application) -> bool:
    """At least one file slot reference, or a document uploaded outside the slots."""
    if any(getattr(application, slot) for slot in FILE_SLOTS):
        return True
    return any(doc.slot is None for doc in application.documents)


def _load_for_actor(application_id, actor):
    application = db.session.get(SupplierApplication, application_id)
    if application is None:
        raise NotFoundError("SupplierApplication", application_id)
    # Owners only ever see their own applications
    if actor.role == OWNER_ROLE and application.owner_id != actor.id:
        raise NotFoundError("SupplierApplication", application_id)
    return application


def _apply_side_effects(application, action, target, now, comments, vendor_number):
    if action == "submit":
        application.submitted_at = now
        application.approval_stage = "procurement"
        application.sla_due_at = now + timedelta(days=_sla_days())
        application.days_to_complete = None
        application.is_overdue = None
    elif action == "approve":
        if target == "pending_legal":
            application.approval_stage = "legal"
        else:
            application.approval_stage = "completed"
            application.approved_at = now
            submitted_at = as_utc(application.submitted_at)
            if submitted_at is not None:
                days = math.ceil((now - submitted_at).total_seconds() / 86400)
                application.days_to_complete = days
                application.is_overdue = days > _sla_days()
    elif action == "reject":
        application.rejected_at = now
        application.rejection_reason = comments
    elif action == "request_info":
        application.approval_stage = "procurement"
    elif action == "assign_vendor_number":
        application.vendor_number = vendor_number


def _queue_notifications(application, action, target, comments, vendor_number):
    name = application.supplier_name or "Supplier application"
    common = {"entity_type": "supplier", "entity_id": application.id}

    if action == "submit":
        NotificationService.queue_for_role(
            "procurement",
            title="New Supplier Application Submitted",
            message=f"{name} has submitted an application for review",
            category="application_submitted",
            **common,
        )
    elif action == "approve" and target == "pending_legal":
        NotificationService.queue_for_role(
            "legal",
            title="Supplier Application Ready for Legal Review",
            message=f"{name} has been approved by procurement and requires legal review",
            category="new_task_assigned",
            **common,
        )
        NotificationService.queue(
            recipient=application.owner_id,
            title="Application Approved by Procurement",
            message="Your application has been approved by procurement and is now under legal review.",
            category="application_approved",
            **common,
        )
    elif action == "approve":
        NotificationService.queue(
            recipient=application.owner_id,
            title="Application Approved",
            message="Your application has been fully approved! Awaiting vendor number assignment.",
            category="application_approved",
            **common,
        )
    elif action == "reject":
        NotificationService.queue(
            recipient=application.owner_id,
            title="Application Rejected",
            message=f"Your application has been rejected. Reason: {comments}",
            category="application_rejected",
            priority="high",
            **common,
        )
    elif action == "request_info":
        NotificationService.queue(
            recipient=application.owner_id,
            title="Additional Information Required",
            message=f"Please provide additional information: {comments}",
            category="more_info_required",
            priority="high",
            **common,
        )
    elif action == "assign_vendor_number":
        NotificationService.queue(
            recipient=application.owner_id,
            title="Vendor Number Assigned",
            message=f"Your vendor number is {vendor_number}. You are now fully onboarded.",
            category="vendor_number_assigned",
            **common,
        )


def transition_application(
    application_id,
    action,
    actor,
    *,
    comments=None,
    vendor_number=None,
    expected_status=None,
    payload=None,
    policy=None,
):
    """
    Execute an application lifecycle transition.

    Args:
        application_id: UUID of the application
        action: submit | approve | reject | request_info | assign_vendor_number
        actor: Actor performing the action
        comments: Mandatory for reject / request_info
        vendor_number: Mandatory for assign_vendor_number
        expected_status: Status the caller last saw; mismatch → ConflictError
        payload: Optional final save payload applied before 'submit'
        policy: Callable(application) -> bool deciding legal review;
                defaults to the configured ApprovalRoutingPolicy

    Returns: {"application_id", "action", "previous_status", "new_status", "vendor_number"}

    Raises:
        NotFoundError, ConflictError, PolicyError, ValidationError
    """
    application = _load_for_actor(application_id, actor)
    previous_status = application.status

    # 1. Staleness
    if expected_status is not None and expected_status != previous_status:
        raise ConflictError(
            "SupplierApplication", "status", previous_status, expected=expected_status,
        )

    # 2. Transition + role
    target = require_transition(
        previous_status, action, actor.role, vendor_number=application.vendor_number,
    )

    # 3. Mandatory inputs
    comments = (comments or "").strip() or None
    if action in APPLICATION_COMMENT_REQUIRED and not comments:
        raise PolicyError(action, previous_status, "comments are required")

    if action == "assign_vendor_number":
        vendor_number = (vendor_number or "").strip()
        if not vendor_number:
            raise ValidationError("vendor_number is required", details={"vendor_number": "required"})
        taken = SupplierApplication.query.filter(
            SupplierApplication.vendor_number == vendor_number,
            SupplierApplication.id != application.id,
        ).first()
        if taken is not None:
            raise ConflictError("SupplierApplication", "vendor_number", vendor_number)
        if not comments:
            comments = f"Vendor number {vendor_number} assigned"

    if action == "submit":
        if payload:
            apply_payload(application, clean_payload(payload))
        if not has_attached_documents(application):
            db.session.rollback()
            raise ValidationError(
                "At least one document must be attached before submitting",
                details={"documents": "required"},
            )

    # 4. Execute
    if target == ROUTED:
        policy = policy or default_policy()
        target = "pending_legal" if policy(application) else "approved"

    now = datetime.now(timezone.utc)
    application.status = target
    _apply_side_effects(application, action, target, now, comments, vendor_number)

    # 5. History — exactly one entry per transition
    db.session.add(ApprovalHistoryEntry(
        entity_type="supplier",
        entity_id=application.id,
        action=HISTORY_ACTIONS[action],
        from_status=previous_status,
        to_status=target,
        actor_id=actor.id,
        actor_role=actor.role,
        comments=comments,
        timestamp=now,
    ))

    # 6. Notifications (same transaction)
    _queue_notifications(application, action, target, comments, vendor_number)

    commit_or_raise(
        "SupplierApplication", application.id,
        unique_field="vendor_number" if action == "assign_vendor_number" else None,
        unique_value=vendor_number if action == "assign_vendor_number" else None,
    )

    logger.info(
        "Application transition %s: %s -> %s",
        action, previous_status, target,
        extra={
            "event_type": "application_transition",
            "application_id": application.id,
            "action": action,
            "actor_role": actor.role,
        },
    )
    return {
        "application_id": application.id,
        "action": action,
        "previous_status": previous_status,
        "new_status": application.status,
        "vendor_number": application.vendor_number,
    }
