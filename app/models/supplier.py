"""
Supplier onboarding domain models.

Models:
    - SupplierApplication: the supplier record while it is being onboarded
    - SupplierDocument: uploaded document metadata, owned by one application
    - ProfileUpdateRequest: field change proposed by an approved supplier
    - ApprovalHistoryEntry: append-only transition log (applications and contracts)

Field names mirror ``app.workflow.fields`` so the wire shape of a saved draft
maps 1:1 onto columns.
"""

import uuid
from datetime import datetime, timezone

from app.models import db
from app.workflow.fields import LIST_FILE_SLOTS, SCALAR_FIELDS, SINGLE_FILE_SLOTS

__all__ = [
    "SupplierApplication",
    "SupplierDocument",
    "ProfileUpdateRequest",
    "ApprovalHistoryEntry",
    "APPROVAL_STAGES",
    "DOCUMENT_STATUSES",
]


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def as_utc(value):
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _iso(value):
    value = as_utc(value)
    return value.isoformat() if value else None


# ── Constants ────────────────────────────────────────────────────────────────

APPROVAL_STAGES = ("procurement", "legal", "completed")
DOCUMENT_STATUSES = ("pending_review", "approved", "rejected", "expired")


# ═════════════════════════════════════════════════════════════════════════════
# SupplierApplication
# ═════════════════════════════════════════════════════════════════════════════

class SupplierApplication(db.Model):
    """
    Supplier application captured by the multi-step form.

    Business rules (enforced in services, not here):
    - status changes only through application_lifecycle.transition_application
    - vendor_number is non-null only when status == approved
    - current_step is a resume pointer, never used for authorization
    - ``version`` is an optimistic lock: concurrent commits raise StaleDataError
    """

    __tablename__ = "supplier_applications"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    owner_id = db.Column(db.String(100), nullable=False, index=True,
                         comment="Actor id of the supplier user who created the draft")

    status = db.Column(db.String(30), nullable=False, default="draft", index=True)
    current_step = db.Column(db.Integer, nullable=False, default=0)
    approval_stage = db.Column(db.String(20), nullable=True,
                               comment="procurement | legal | completed")

    # Step 0 — Basic Information
    supplier_name = db.Column(db.String(255), default="")
    registered_country = db.Column(db.String(100), default="")
    company_registration_number = db.Column(db.String(100), default="")
    company_email = db.Column(db.String(255), default="")
    company_website = db.Column(db.String(255), default="")
    legal_nature = db.Column(db.String(30), nullable=True,
                             comment="state_owned | ngo | foundation | association | company | ...")
    physical_address = db.Column(db.Text, default="")
    contact_full_name = db.Column(db.String(255), default="")
    contact_relationship = db.Column(db.String(100), default="")
    contact_id_passport = db.Column(db.String(100), default="")
    contact_phone = db.Column(db.String(50), default="")
    contact_email = db.Column(db.String(255), default="")
    bank_name = db.Column(db.String(255), default="")
    account_number = db.Column(db.String(100), default="")
    branch = db.Column(db.String(255), default="")
    currency = db.Column(db.String(3), default="")
    credit_period = db.Column(db.Integer, nullable=True, comment="Days")

    # Step 1 — Entity Details
    entity_type = db.Column(db.String(30), nullable=True,
                            comment="private_company | public_company | partnership | ...")
    service_type = db.Column(db.String(255), default="")
    services_description = db.Column(db.Text, default="")

    # Step 2 — Declarations
    source_of_wealth = db.Column(db.Text, default="")
    declarant_full_name = db.Column(db.String(255), default="")
    declarant_capacity = db.Column(db.String(255), default="")
    declarant_id_passport = db.Column(db.String(100), default="")
    declaration_date = db.Column(db.String(10), default="", comment="YYYY-MM-DD as entered")
    consent_to_processing = db.Column(db.Boolean, nullable=False, default=False)

    # File slots — stored filename references
    certificate_of_incorporation = db.Column(db.String(255), nullable=True)
    kra_pin_certificate = db.Column(db.String(255), nullable=True)
    etims_proof = db.Column(db.String(255), nullable=True)
    financial_statements = db.Column(db.String(255), nullable=True)
    cr12 = db.Column(db.String(255), nullable=True)
    company_profile = db.Column(db.String(255), nullable=True)
    bank_reference_letter = db.Column(db.String(255), nullable=True)
    declaration_signature_file = db.Column(db.String(255), nullable=True)
    directors_ids = db.Column(db.JSON, default=list)
    practicing_certificates = db.Column(db.JSON, default=list)
    key_members_resumes = db.Column(db.JSON, default=list)

    # Outcome
    vendor_number = db.Column(db.String(50), nullable=True, unique=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    # Timestamps & SLA
    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)
    sla_due_at = db.Column(db.DateTime(timezone=True), nullable=True)
    days_to_complete = db.Column(db.Integer, nullable=True)
    is_overdue = db.Column(db.Boolean, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    version = db.Column(db.Integer, nullable=False)

    documents = db.relationship(
        "SupplierDocument", backref="application", lazy="select",
        cascade="all, delete-orphan", order_by="SupplierDocument.uploaded_at",
    )
    profile_update_requests = db.relationship(
        "ProfileUpdateRequest", backref="application", lazy="select",
        cascade="all, delete-orphan", order_by="ProfileUpdateRequest.requested_at",
    )

    __mapper_args__ = {"version_id_col": version}

    def history(self):
        return ApprovalHistoryEntry.for_entity("supplier", self.id)

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "owner_id": self.owner_id,
            "status": self.status,
            "current_step": self.current_step,
            "approval_stage": self.approval_stage,
        }
        for name in SCALAR_FIELDS:
            d[name] = getattr(self, name)
        for slot in SINGLE_FILE_SLOTS:
            d[slot] = getattr(self, slot)
        for slot in LIST_FILE_SLOTS:
            d[slot] = list(getattr(self, slot) or [])
        d.update({
            "vendor_number": self.vendor_number,
            "rejection_reason": self.rejection_reason,
            "submitted_at": _iso(self.submitted_at),
            "approved_at": _iso(self.approved_at),
            "rejected_at": _iso(self.rejected_at),
            "sla": {
                "due_at": _iso(self.sla_due_at),
                "days_to_complete": self.days_to_complete,
                "is_overdue": self.is_overdue,
            },
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        })
        if include_children:
            d["documents"] = [doc.to_dict() for doc in self.documents]
            d["approval_history"] = [h.to_dict() for h in self.history()]
        return d

    def __repr__(self):
        return f"<SupplierApplication {self.id[:8]} {self.supplier_name!r} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# SupplierDocument
# ═════════════════════════════════════════════════════════════════════════════

class SupplierDocument(db.Model):
    """Uploaded document metadata. Bytes live in external file storage."""

    __tablename__ = "supplier_documents"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    application_id = db.Column(
        db.String(36), db.ForeignKey("supplier_applications.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    slot = db.Column(db.String(50), nullable=True, comment="Form file slot the upload came from")
    document_type = db.Column(db.String(50), nullable=False, default="other")
    file_name = db.Column(db.String(255), nullable=False, comment="Sanitised stored name")
    original_name = db.Column(db.String(255), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    mime_type = db.Column(db.String(100), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="pending_review",
                       comment="pending_review | approved | rejected | expired")
    review_notes = db.Column(db.Text, nullable=True)
    reviewed_by = db.Column(db.String(100), nullable=True)
    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    uploaded_by = db.Column(db.String(100), nullable=False)
    uploaded_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "application_id": self.application_id,
            "slot": self.slot,
            "document_type": self.document_type,
            "file_name": self.file_name,
            "original_name": self.original_name,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "status": self.status,
            "review_notes": self.review_notes,
            "reviewed_by": self.reviewed_by,
            "reviewed_at": _iso(self.reviewed_at),
            "uploaded_by": self.uploaded_by,
            "uploaded_at": _iso(self.uploaded_at),
        }

    def __repr__(self):
        return f"<SupplierDocument {self.id[:8]} {self.original_name}>"


# ═════════════════════════════════════════════════════════════════════════════
# ProfileUpdateRequest
# ═════════════════════════════════════════════════════════════════════════════

class ProfileUpdateRequest(db.Model):
    """
    Change to one profile field of an approved supplier, pending procurement review.

    The field keeps its current value until the request is approved.
    """

    __tablename__ = "profile_update_requests"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    application_id = db.Column(
        db.String(36), db.ForeignKey("supplier_applications.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    field = db.Column(db.String(50), nullable=False)
    old_value = db.Column(db.JSON, nullable=True)
    new_value = db.Column(db.JSON, nullable=True)
    reason = db.Column(db.Text, nullable=True, comment="Supplier's explanation")
    status = db.Column(db.String(20), nullable=False, default="pending", index=True,
                       comment="pending | approved | rejected")
    requested_by = db.Column(db.String(100), nullable=False)
    requested_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    processed_by = db.Column(db.String(100), nullable=True)
    processed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    decision_comments = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "application_id": self.application_id,
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "reason": self.reason,
            "status": self.status,
            "requested_by": self.requested_by,
            "requested_at": _iso(self.requested_at),
            "processed_by": self.processed_by,
            "processed_at": _iso(self.processed_at),
            "decision_comments": self.decision_comments,
        }

    def __repr__(self):
        return f"<ProfileUpdateRequest {self.id[:8]} {self.field} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# ApprovalHistoryEntry — append-only
# ═════════════════════════════════════════════════════════════════════════════

class ApprovalHistoryEntry(db.Model):
    """
    Immutable record of one status transition.

    Polymorphic: entity_type + entity_id identify the subject
    ("supplier" → SupplierApplication.id, "contract" → Contract.id).
    Rows are only ever inserted by the lifecycle services; there is no
    update or delete path.
    """

    __tablename__ = "approval_history"

    id = db.Column(db.Integer, primary_key=True)
    entity_type = db.Column(db.String(20), nullable=False, comment="supplier | contract")
    entity_id = db.Column(db.String(36), nullable=False)
    action = db.Column(
        db.String(30), nullable=False,
        comment="submitted | approved | rejected | requested_info | assigned_vendor_number | ...",
    )
    from_status = db.Column(db.String(30), nullable=True)
    to_status = db.Column(db.String(30), nullable=True)
    actor_id = db.Column(db.String(100), nullable=False)
    actor_role = db.Column(db.String(30), nullable=False)
    comments = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    __table_args__ = (
        db.Index("ix_approval_history_entity", "entity_type", "entity_id"),
    )

    @classmethod
    def for_entity(cls, entity_type, entity_id):
        """History oldest first; id breaks ties within the same timestamp."""
        return (
            cls.query
            .filter_by(entity_type=entity_type, entity_id=str(entity_id))
            .order_by(cls.timestamp.asc(), cls.id.asc())
            .all()
        )

    def to_dict(self):
        return {
            "id": self.id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "comments": self.comments,
            "timestamp": _iso(self.timestamp),
        }

    def __repr__(self):
        return f"<ApprovalHistoryEntry #{self.id} {self.entity_type}/{self.entity_id} {self.action}>"
