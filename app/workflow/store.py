"""
ApplicationStore — the persistence contract the workflow core depends on.

The Draft Manager, Step Navigator and ReviewPanel never talk to a database or
an HTTP client directly; they are handed an ApplicationStore. The production
implementation is ``app.integrations.supplier_gateway.SupplierGateway``.

Every method returns plain dicts in the wire shape (snake_case keys) and
raises only the ``app.core.exceptions`` taxonomy:
    ValidationError, PolicyError, ConflictError, NotFoundError, TransportError
"""

from abc import ABC, abstractmethod

from app.workflow.file_refs import PendingUpload


class ApplicationStore(ABC):
    """Abstract persistence collaborator for supplier applications."""

    # ── Draft persistence ────────────────────────────────────────────────

    @abstractmethod
    def create_draft(self, payload: dict) -> dict:
        """Create a draft application. Returns at least ``{"id": ...}``."""

    @abstractmethod
    def update_draft(self, application_id: str, payload: dict) -> dict:
        """Replace-on-write save of a draft (full snapshot payload)."""

    @abstractmethod
    def upload_document(self, application_id: str, slot: str, upload: PendingUpload) -> dict:
        """Side channel for file bytes. Returns the stored document record."""

    @abstractmethod
    def delete_document(self, document_id: str) -> None:
        """Explicit removal of a stored document and the slot reference to it."""

    # ── Reads ────────────────────────────────────────────────────────────

    @abstractmethod
    def get_by_id(self, application_id: str) -> dict:
        """Full record including ``approval_history`` and ``documents``."""

    @abstractmethod
    def list_mine(self) -> list[dict]:
        """Applications owned by the current actor."""

    @abstractmethod
    def list_tasks(self) -> list[dict]:
        """Applications the current actor's role can act on right now."""

    # ── Transitions ──────────────────────────────────────────────────────

    @abstractmethod
    def submit(self, application_id: str, payload: dict | None = None,
               expected_status: str | None = None) -> dict:
        """Submit the draft. Returns ``{"status": ...}`` as decided server-side."""

    @abstractmethod
    def approve(self, application_id: str, comments: str | None = None,
                expected_status: str | None = None) -> dict:
        """Approve at the current stage."""

    @abstractmethod
    def reject(self, application_id: str, comments: str,
               expected_status: str | None = None) -> dict:
        """Reject; ``comments`` becomes the rejection reason."""

    @abstractmethod
    def request_info(self, application_id: str, comments: str,
                     expected_status: str | None = None) -> dict:
        """Send the application back to the owner for more information."""

    @abstractmethod
    def assign_vendor_number(self, application_id: str, vendor_number: str,
                             expected_status: str | None = None) -> dict:
        """Assign the vendor number on an approved application."""
