"""supplier_onboarding_tables

Creates the supplier onboarding schema:
  - supplier_applications — multi-step application with file slot references
  - supplier_documents    — uploaded document metadata
  - approval_history      — append-only transition log (supplier + contract)
  - contracts             — one contract per approved supplier
  - notifications         — in-app notifications (actor or role:<role>)

Tables created conditionally (IF NOT EXISTS semantics) so the revision can be
stamped onto a development database that already ran db.create_all().

Revision ID: 3f1c2a9d7e10
Revises:
Create Date: 2026-10-19 09:12:40.118204
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7e10'
down_revision = None
branch_labels = None
depends_on = None


def _text_columns(names, length=255):
    return [sa.Column(n, sa.String(length=length), nullable=True) for n in names]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing = set(inspector.get_table_names())

    # ── Supplier applications ─────────────────────────────────────────────
    if "supplier_applications" not in existing:
        op.create_table(
            "supplier_applications",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("owner_id", sa.String(length=100), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
            sa.Column("current_step", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("approval_stage", sa.String(length=20), nullable=True,
                      comment="procurement | legal | completed"),
            # Step 0 — Basic Information
            sa.Column("supplier_name", sa.String(length=255), nullable=True),
            sa.Column("registered_country", sa.String(length=100), nullable=True),
            sa.Column("company_registration_number", sa.String(length=100), nullable=True),
            sa.Column("company_email", sa.String(length=255), nullable=True),
            sa.Column("company_website", sa.String(length=255), nullable=True),
            sa.Column("legal_nature", sa.String(length=30), nullable=True),
            sa.Column("physical_address", sa.Text(), nullable=True),
            sa.Column("contact_full_name", sa.String(length=255), nullable=True),
            sa.Column("contact_relationship", sa.String(length=100), nullable=True),
            sa.Column("contact_id_passport", sa.String(length=100), nullable=True),
            sa.Column("contact_phone", sa.String(length=50), nullable=True),
            sa.Column("contact_email", sa.String(length=255), nullable=True),
            sa.Column("bank_name", sa.String(length=255), nullable=True),
            sa.Column("account_number", sa.String(length=100), nullable=True),
            sa.Column("branch", sa.String(length=255), nullable=True),
            sa.Column("currency", sa.String(length=3), nullable=True),
            sa.Column("credit_period", sa.Integer(), nullable=True, comment="Days"),
            # Step 1 — Entity Details
            sa.Column("entity_type", sa.String(length=30), nullable=True),
            sa.Column("service_type", sa.String(length=255), nullable=True),
            sa.Column("services_description", sa.Text(), nullable=True),
            # Step 2 — Declarations
            sa.Column("source_of_wealth", sa.Text(), nullable=True),
            sa.Column("declarant_full_name", sa.String(length=255), nullable=True),
            sa.Column("declarant_capacity", sa.String(length=255), nullable=True),
            sa.Column("declarant_id_passport", sa.String(length=100), nullable=True),
            sa.Column("declaration_date", sa.String(length=10), nullable=True),
            sa.Column("consent_to_processing", sa.Boolean(), nullable=False,
                      server_default=sa.false()),
            # File slots
            *_text_columns((
                "certificate_of_incorporation",
                "kra_pin_certificate",
                "etims_proof",
                "financial_statements",
                "cr12",
                "company_profile",
                "bank_reference_letter",
                "declaration_signature_file",
            )),
            sa.Column("directors_ids", sa.JSON(), nullable=True),
            sa.Column("practicing_certificates", sa.JSON(), nullable=True),
            sa.Column("key_members_resumes", sa.JSON(), nullable=True),
            # Outcome
            sa.Column("vendor_number", sa.String(length=50), nullable=True),
            sa.Column("rejection_reason", sa.Text(), nullable=True),
            # Timestamps & SLA
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("sla_due_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("days_to_complete", sa.Integer(), nullable=True),
            sa.Column("is_overdue", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("vendor_number"),
        )
        op.create_index("ix_supplier_applications_owner_id", "supplier_applications", ["owner_id"])
        op.create_index("ix_supplier_applications_status", "supplier_applications", ["status"])

    # ── Supplier documents ────────────────────────────────────────────────
    if "supplier_documents" not in existing:
        op.create_table(
            "supplier_documents",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("application_id", sa.String(length=36), nullable=False),
            sa.Column("slot", sa.String(length=50), nullable=True),
            sa.Column("document_type", sa.String(length=50), nullable=False, server_default="other"),
            sa.Column("file_name", sa.String(length=255), nullable=False),
            sa.Column("original_name", sa.String(length=255), nullable=False),
            sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("mime_type", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending_review"),
            sa.Column("uploaded_by", sa.String(length=100), nullable=False),
            sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["application_id"], ["supplier_applications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_supplier_documents_application_id", "supplier_documents", ["application_id"])

    # ── Approval history (append-only) ────────────────────────────────────
    if "approval_history" not in existing:
        op.create_table(
            "approval_history",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("entity_type", sa.String(length=20), nullable=False,
                      comment="supplier | contract"),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("action", sa.String(length=30), nullable=False),
            sa.Column("from_status", sa.String(length=30), nullable=True),
            sa.Column("to_status", sa.String(length=30), nullable=True),
            sa.Column("actor_id", sa.String(length=100), nullable=False),
            sa.Column("actor_role", sa.String(length=30), nullable=False),
            sa.Column("comments", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_approval_history_entity", "approval_history", ["entity_type", "entity_id"])

    # ── Contracts ─────────────────────────────────────────────────────────
    if "contracts" not in existing:
        op.create_table(
            "contracts",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("contract_number", sa.String(length=20), nullable=False,
                      comment="CTR-YYYY-NNNN"),
            sa.Column("supplier_id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("contract_type", sa.String(length=20), nullable=False, server_default="services"),
            sa.Column("value_amount", sa.Numeric(14, 2), nullable=True),
            sa.Column("currency", sa.String(length=3), nullable=False, server_default="KES"),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
            sa.Column("signed_document_name", sa.String(length=255), nullable=True),
            sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("activated_by", sa.String(length=100), nullable=True),
            sa.Column("terminated_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("termination_reason", sa.Text(), nullable=True),
            sa.Column("created_by", sa.String(length=100), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["supplier_id"], ["supplier_applications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("contract_number"),
            sa.UniqueConstraint("supplier_id"),
        )
        op.create_index("ix_contracts_supplier_id", "contracts", ["supplier_id"])
        op.create_index("ix_contracts_status", "contracts", ["status"])

    # ── Notifications ─────────────────────────────────────────────────────
    if "notifications" not in existing:
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("recipient", sa.String(length=150), nullable=False,
                      comment="Actor id or 'role:<role>'"),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("message", sa.Text(), nullable=True),
            sa.Column("category", sa.String(length=30), nullable=True),
            sa.Column("priority", sa.String(length=10), nullable=True),
            sa.Column("entity_type", sa.String(length=20), nullable=True),
            sa.Column("entity_id", sa.String(length=36), nullable=True),
            sa.Column("is_read", sa.Boolean(), nullable=True),
            sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_notifications_recipient", "notifications", ["recipient"])


def downgrade():
    op.drop_table("notifications")
    op.drop_table("contracts")
    op.drop_table("approval_history")
    op.drop_table("supplier_documents")
    op.drop_table("supplier_applications")
