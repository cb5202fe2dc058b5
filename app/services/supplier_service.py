"""
Supplier Application Service — draft persistence, documents and read side.

Business rules enforced here (not in blueprints):
    - only supplier users create drafts; a draft belongs to its creator
    - saves are allowed only while the application is editable
      (draft / more_info_required) and only by the owner
    - documents are added/removed by the owner while editable; removal is
      explicit and also drops the slot reference that pointed at the file
    - reviewers see any application; owners see only their own (404 otherwise)
    - procurement, legal and super_admin record a verdict per document

Status transitions are delegated to ``application_lifecycle``.
"""

import logging
import os
from datetime import datetime, timezone

from flask import current_app
from werkzeug.utils import secure_filename

from app.core.exceptions import NotFoundError, PolicyError, ValidationError
from app.models import db
from app.models.supplier import DOCUMENT_STATUSES, SupplierApplication, SupplierDocument
from app.services.application_lifecycle import referenced_documents, transition_application
from app.services.draft_payload import apply_payload, clean_payload
from app.services.notification import NotificationService
from app.utils.helpers import commit_or_raise
from app.workflow.fields import (
    DEFAULT_MAX_FILES_PER_SLOT,
    DOCUMENT_TYPES,
    FILE_SLOTS,
    LIST_FILE_SLOTS,
    SLOT_DOCUMENT_TYPES,
)
from app.workflow.status_machine import (
    EDITABLE_STATUSES,
    OWNER_ROLE,
    REVIEWER_ROLES,
    actionable_statuses,
)

logger = logging.getLogger(__name__)

DOCUMENT_REVIEWER_ROLES = REVIEWER_ROLES + ("super_admin",)


# ── Private helpers ────────────────────────────────────────────────────────────


def _require_owner_role(actor, action):
    if actor.role != OWNER_ROLE:
        raise PolicyError(action, None, "Only supplier users can do this", role=actor.role)


def _get_visible(application_id, actor):
    application = db.session.get(SupplierApplication, application_id)
    if application is None:
        raise NotFoundError("SupplierApplication", application_id)
    if actor.role == OWNER_ROLE and application.owner_id != actor.id:
        raise NotFoundError("SupplierApplication", application_id)
    return application


def _get_editable(application_id, actor, action):
    _require_owner_role(actor, action)
    application = _get_visible(application_id, actor)
    if application.status not in EDITABLE_STATUSES:
        raise PolicyError(action, application.status, "Application is not editable in this status")
    return application


# ── Drafts ─────────────────────────────────────────────────────────────────────


def create_draft(actor, payload):
    """Create a new draft owned by ``actor``. Returns the model."""
    _require_owner_role(actor, "create_draft")
    cleaned = clean_payload(payload or {})
    application = SupplierApplication(owner_id=actor.id, status="draft", current_step=0)
    apply_payload(application, cleaned)
    db.session.add(application)
    commit_or_raise("SupplierApplication")
    logger.info("Draft created", extra={"application_id": application.id, "event_type": "draft_created"})
    return application


def update_draft(application_id, actor, payload):
    """Replace-on-write save of an editable application."""
    application = _get_editable(application_id, actor, "save")
    cleaned = clean_payload(payload or {})
    apply_payload(application, cleaned)
    commit_or_raise("SupplierApplication", application.id)
    return application


def submit(application_id, actor, payload=None, expected_status=None):
    return transition_application(
        application_id, "submit", actor,
        payload=payload, expected_status=expected_status,
    )


# ── Reads ──────────────────────────────────────────────────────────────────────


def get_for_actor(application_id, actor):
    return _get_visible(application_id, actor)


def list_mine(actor):
    return (
        SupplierApplication.query
        .filter_by(owner_id=actor.id)
        .order_by(SupplierApplication.created_at.desc())
        .all()
    )


def list_tasks(actor):
    """Applications the actor's role can act on right now, oldest submission first."""
    statuses = actionable_statuses(actor.role)
    if not statuses or actor.role == OWNER_ROLE:
        return []
    candidates = (
        SupplierApplication.query
        .filter(SupplierApplication.status.in_(statuses))
        .order_by(SupplierApplication.submitted_at.asc(), SupplierApplication.created_at.asc())
        .all()
    )
    # Approved records are only a task while the vendor number is missing
    return [
        a for a in candidates
        if not (a.status == "approved" and a.vendor_number)
    ]


# ── Documents ──────────────────────────────────────────────────────────────────


def upload_document(application_id, actor, *, filename, content_length=0, mime_type=None,
                    slot=None, document_type=None):
    """Record an uploaded document. File bytes go to external storage."""
    application = _get_editable(application_id, actor, "upload_document")

    if slot is not None and slot not in FILE_SLOTS:
        raise ValidationError(f"Unknown file slot '{slot}'", details={"slot": "unknown"})
    document_type = document_type or SLOT_DOCUMENT_TYPES.get(slot, "other")
    if document_type not in DOCUMENT_TYPES:
        raise ValidationError(
            f"Unknown document_type '{document_type}'", details={"document_type": "unknown"},
        )

    stored_name = secure_filename(filename or "")
    if not stored_name:
        raise ValidationError("A file name is required", details={"file": "required"})

    # The slot keeps the name the client uses as its reference
    reference = filename if os.path.basename(filename) == filename else stored_name
    if slot in LIST_FILE_SLOTS:
        max_files = current_app.config.get("MAX_FILES_PER_SLOT", DEFAULT_MAX_FILES_PER_SLOT)
        names = list(getattr(application, slot) or [])
        if reference not in names:
            names.append(reference)
        if len(names) > max_files or len(referenced_documents(application, slot)) >= max_files:
            raise ValidationError(
                f"{slot} already holds {max_files} files", details={slot: "limit reached"},
            )
        setattr(application, slot, names)
    elif slot is not None:
        setattr(application, slot, reference)

    document = SupplierDocument(
        application_id=application.id,
        slot=slot,
        document_type=document_type,
        file_name=stored_name,
        original_name=filename,
        file_size=content_length or 0,
        mime_type=mime_type,
        uploaded_by=actor.id,
    )
    db.session.add(document)
    commit_or_raise("SupplierDocument")
    logger.info(
        "Document uploaded",
        extra={"application_id": application.id, "event_type": "document_uploaded"},
    )
    return document


def delete_document(document_id, actor):
    """Explicit removal of a document and of the slot reference pointing at it."""
    document = db.session.get(SupplierDocument, document_id)
    if document is None:
        raise NotFoundError("SupplierDocument", document_id)
    application = _get_editable(document.application_id, actor, "delete_document")

    # Slot references hold the name the client sent, before sanitising
    refs = {document.file_name, document.original_name}
    if document.slot in LIST_FILE_SLOTS:
        names = list(getattr(application, document.slot) or [])
        kept = [n for n in names if n not in refs]
        if len(kept) != len(names):
            setattr(application, document.slot, kept)
    elif document.slot and getattr(application, document.slot) in refs:
        setattr(application, document.slot, None)

    db.session.delete(document)
    commit_or_raise("SupplierDocument", document_id)
    return document_id


def review_document(document_id, actor, status, notes=None):
    """Set a reviewer's verdict on one document. Rejection needs notes."""
    if actor.role not in DOCUMENT_REVIEWER_ROLES:
        raise PolicyError("review_document", None, "Only reviewers can review documents",
                          role=actor.role)
    document = db.session.get(SupplierDocument, document_id)
    if document is None:
        raise NotFoundError("SupplierDocument", document_id)
    if status not in DOCUMENT_STATUSES:
        raise ValidationError(
            f"Unknown document status '{status}'",
            details={"status": f"must be one of {', '.join(DOCUMENT_STATUSES)}"},
        )
    notes = (notes or "").strip() or None
    if status == "rejected" and not notes:
        raise ValidationError("notes are required when rejecting a document",
                              details={"notes": "required"})

    previous_status = document.status
    document.status = status
    document.review_notes = notes
    document.reviewed_by = actor.id
    document.reviewed_at = datetime.now(timezone.utc)
    if status == "rejected":
        application = document.application
        NotificationService.queue(
            recipient=application.owner_id,
            title="Document Rejected",
            message=f"{document.original_name} was rejected. Reason: {notes}",
            category="document_rejected",
            entity_type="supplier",
            entity_id=application.id,
        )
    commit_or_raise("SupplierDocument", document.id)
    logger.info(
        "Document %s: %s -> %s", document.id, previous_status, status,
        extra={"event_type": "document_reviewed", "application_id": document.application_id,
               "actor_role": actor.role},
    )
    return document
