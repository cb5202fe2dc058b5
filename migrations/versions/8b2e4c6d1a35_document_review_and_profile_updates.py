"""document_review_and_profile_updates

Adds:
  - supplier_documents.review_notes / reviewed_by / reviewed_at
      reviewer verdict on a single document
  - profile_update_requests
      field changes proposed by approved suppliers, decided by procurement

Revision ID: 8b2e4c6d1a35
Revises: 3f1c2a9d7e10
Create Date: 2026-10-19 15:40:02.551873
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = '8b2e4c6d1a35'
down_revision = '3f1c2a9d7e10'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    document_columns = {c["name"] for c in inspector.get_columns("supplier_documents")}

    # ── Document review ───────────────────────────────────────────────────
    with op.batch_alter_table("supplier_documents") as batch_op:
        if "review_notes" not in document_columns:
            batch_op.add_column(sa.Column("review_notes", sa.Text(), nullable=True))
        if "reviewed_by" not in document_columns:
            batch_op.add_column(sa.Column("reviewed_by", sa.String(length=100), nullable=True))
        if "reviewed_at" not in document_columns:
            batch_op.add_column(sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True))

    # ── Profile update requests ───────────────────────────────────────────
    if "profile_update_requests" not in set(inspector.get_table_names()):
        op.create_table(
            "profile_update_requests",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("application_id", sa.String(length=36), nullable=False),
            sa.Column("field", sa.String(length=50), nullable=False),
            sa.Column("old_value", sa.JSON(), nullable=True),
            sa.Column("new_value", sa.JSON(), nullable=True),
            sa.Column("reason", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
            sa.Column("requested_by", sa.String(length=100), nullable=False),
            sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("processed_by", sa.String(length=100), nullable=True),
            sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("decision_comments", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(
                ["application_id"], ["supplier_applications.id"], ondelete="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_profile_update_requests_application_id",
            "profile_update_requests", ["application_id"],
        )
        op.create_index(
            "ix_profile_update_requests_status",
            "profile_update_requests", ["status"],
        )


def downgrade():
    op.drop_index("ix_profile_update_requests_status", table_name="profile_update_requests")
    op.drop_index("ix_profile_update_requests_application_id", table_name="profile_update_requests")
    op.drop_table("profile_update_requests")

    with op.batch_alter_table("supplier_documents") as batch_op:
        batch_op.drop_column("reviewed_at")
        batch_op.drop_column("reviewed_by")
        batch_op.drop_column("review_notes")
