"""
Supplier Onboarding Portal
Notification domain model.

Models:
    - Notification: in-app notification record with read tracking
"""

from datetime import datetime, timezone

from app.models import db


# ── Constants ────────────────────────────────────────────────────────────────

NOTIFICATION_CATEGORIES = {
    "application_submitted",
    "application_approved",
    "application_rejected",
    "more_info_required",
    "vendor_number_assigned",
    "document_rejected",
    "profile_update_requested",
    "profile_update_approved",
    "profile_update_rejected",
    "contract_uploaded",
    "contract_expiring",
    "new_task_assigned",
    "sla_warning",
    "system",
}
NOTIFICATION_PRIORITIES = {"low", "normal", "high"}


def role_recipient(role):
    """Recipient key for a role-wide broadcast."""
    return f"role:{role}"


class Notification(db.Model):
    """
    In-app notification entity.

    One record per recipient per event. ``recipient`` is an actor id or
    ``role:<role>`` for everyone holding that role.
    """

    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    recipient = db.Column(db.String(150), nullable=False, index=True, comment="Actor id or 'role:<role>'")
    title = db.Column(db.String(300), nullable=False)
    message = db.Column(db.Text, default="")
    category = db.Column(db.String(30), default="system")
    priority = db.Column(db.String(10), default="normal")

    # Link to source entity
    entity_type = db.Column(db.String(20), default="", comment="supplier | contract")
    entity_id = db.Column(db.String(36), nullable=True)

    # Read tracking
    is_read = db.Column(db.Boolean, default=False)
    read_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def mark_read(self):
        self.is_read = True
        self.read_at = datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "recipient": self.recipient,
            "title": self.title,
            "message": self.message,
            "category": self.category,
            "priority": self.priority,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "is_read": self.is_read,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Notification {self.id}: {self.title[:40]}>"
