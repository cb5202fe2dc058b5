"""
Supplier contract model.

One contract per approved supplier. Status follows the contract machine in
``app.workflow.status_machine`` (draft → active → expired | terminated |
renewed); transitions are logged to ApprovalHistoryEntry with
entity_type="contract".
"""

from datetime import date, datetime, timezone

from app.models import db
from app.models.supplier import _iso, _uuid

CONTRACT_TYPES = ("services", "goods", "consultancy", "subscription", "other")


def _utcnow():
    return datetime.now(timezone.utc)


class Contract(db.Model):
    __tablename__ = "contracts"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    contract_number = db.Column(db.String(20), nullable=False, unique=True,
                                comment="CTR-YYYY-NNNN")
    supplier_id = db.Column(
        db.String(36), db.ForeignKey("supplier_applications.id", ondelete="CASCADE"),
        nullable=False, unique=True, index=True,
    )
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, default="")
    contract_type = db.Column(db.String(20), nullable=False, default="services")
    value_amount = db.Column(db.Numeric(14, 2), nullable=True)
    currency = db.Column(db.String(3), nullable=False, default="KES")
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    signed_document_name = db.Column(db.String(255), nullable=True)
    activated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    activated_by = db.Column(db.String(100), nullable=True)
    terminated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    termination_reason = db.Column(db.Text, nullable=True)

    created_by = db.Column(db.String(100), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    version = db.Column(db.Integer, nullable=False)

    supplier = db.relationship("SupplierApplication", backref=db.backref("contract", uselist=False))

    __mapper_args__ = {"version_id_col": version}

    def days_until_expiry(self, today=None):
        today = today or date.today()
        return (self.end_date - today).days

    def to_dict(self, include_history=False):
        d = {
            "id": self.id,
            "contract_number": self.contract_number,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.supplier_name if self.supplier else None,
            "title": self.title,
            "description": self.description,
            "contract_type": self.contract_type,
            "value_amount": float(self.value_amount) if self.value_amount is not None else None,
            "currency": self.currency,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "status": self.status,
            "signed_document_name": self.signed_document_name,
            "activated_at": _iso(self.activated_at),
            "activated_by": self.activated_by,
            "terminated_at": _iso(self.terminated_at),
            "termination_reason": self.termination_reason,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }
        if include_history:
            from app.models.supplier import ApprovalHistoryEntry
            d["history"] = [h.to_dict() for h in ApprovalHistoryEntry.for_entity("contract", self.id)]
        return d

    def __repr__(self):
        return f"<Contract {self.contract_number} [{self.status}]>"
